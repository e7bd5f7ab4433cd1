"""Exceptions raised by the mock HTTP service."""

from __future__ import annotations


class MockHttpServiceError(RuntimeError):
    """Base class for every failure surfaced to the calling test."""


class ServerBindError(MockHttpServiceError):
    """Raised when the embedded server cannot bind its port or start."""


class MalformedMatcherError(MockHttpServiceError, ValueError):
    """Raised when a request body matcher is not valid JSON."""


class MappingLoadError(MockHttpServiceError):
    """Raised when a mappings directory holds unreadable or invalid stubs."""
