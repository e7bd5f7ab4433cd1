"""Test double that serves stubbed HTTP responses on an ephemeral port."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import structlog

from .errors import MalformedMatcherError
from .mappings import load_mappings, save_mappings
from .models import ReceivedRequest, RequestMatcher, StubResponse, StubRule
from .server import StubServer
from .templating import render_template

LOGGER = structlog.get_logger("mock_http_service")


class MockHttpService:
    """Owns an embedded stub server for the lifetime of a test fixture.

    The server is started by the constructor and stays reachable at
    ``http://localhost:<port>/`` until :meth:`stop` is called. Response bodies
    may reference the bound port through the ``${port}`` placeholder.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        self._server = StubServer(host=host, port=port)
        self._server.start()
        self._logger = LOGGER.bind(port=self.port)

    @classmethod
    def create(cls) -> "MockHttpService":
        return cls()

    @classmethod
    def from_mappings(cls, root: Path, host: str = "127.0.0.1", port: int = 0) -> "MockHttpService":
        """Start a service preloaded with the stubs saved under ``root``."""

        service = cls(host=host, port=port)
        try:
            for rule in load_mappings(root):
                service.register(rule)
        except Exception:
            service.stop()
            raise
        service._logger.info("mappings_loaded", root=str(root), stubs=len(service.stub_rules))
        return service

    @property
    def port(self) -> int:
        return self._server.port

    @property
    def server(self) -> StubServer:
        return self._server

    @property
    def template_variables(self) -> dict[str, str]:
        return {"port": str(self.port)}

    @property
    def stub_rules(self) -> list[StubRule]:
        return self._server.rules

    @property
    def received_requests(self) -> list[ReceivedRequest]:
        return self._server.journal

    def stub(self, method: str, url: str, status_code: int, response: str) -> None:
        self.register(self._rule(method, url, status_code, response))

    def stub_with_header(
        self,
        method: str,
        url: str,
        status_code: int,
        response: str,
        headers: Mapping[str, str],
    ) -> None:
        self.register(self._rule(method, url, status_code, response, headers=headers))

    def stub_with_body(self, method: str, url: str, body: str, status_code: int, response: str) -> None:
        """Stub a request that only matches when its body is JSON-equal to ``body``."""

        try:
            expected = json.loads(body)
        except ValueError as exc:
            raise MalformedMatcherError(f"Request body matcher for {method} {url} is not valid JSON: {exc}") from exc
        self.register(self._rule(method, url, status_code, response, body_json=expected, match_body=True))

    def register(self, rule: StubRule) -> None:
        """Register a prepared rule, rendering its body with the current port."""

        rendered = rule.response.model_copy(update={"body": self.normalize_response(rule.response.body)})
        self._server.register_rule(rule.model_copy(update={"response": rendered}))

    def normalize_response(self, template: str) -> str:
        return render_template(template, self.template_variables)

    def complete_url(self, path: str) -> str:
        return f"http://localhost:{self.port}/{path.lstrip('/')}"

    def save_mappings(self, root: Path) -> Path:
        destination = save_mappings(root, self.stub_rules)
        self._logger.info("mappings_saved", destination=str(destination), stubs=len(self.stub_rules))
        return destination

    def reset(self) -> None:
        self._server.reset()
        self._logger.info("service_reset")

    def stop(self) -> None:
        self._server.stop()

    def __enter__(self) -> "MockHttpService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @staticmethod
    def _rule(
        method: str,
        url: str,
        status_code: int,
        response: str,
        *,
        headers: Mapping[str, str] | None = None,
        body_json: Any = None,
        match_body: bool = False,
    ) -> StubRule:
        return StubRule(
            request=RequestMatcher(method=method, url=url, body_json=body_json, match_body=match_body),
            response=StubResponse(status=status_code, headers=dict(headers or {}), body=response),
        )
