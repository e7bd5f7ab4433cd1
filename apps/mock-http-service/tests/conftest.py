"""Test bootstrap for mock-http-service."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

APP_ROOT = Path(__file__).resolve().parents[1]

if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from mock_http_service.service import MockHttpService  # noqa: E402


@pytest.fixture
def service() -> Iterator[MockHttpService]:
    with MockHttpService() as mock_service:
        yield mock_service
