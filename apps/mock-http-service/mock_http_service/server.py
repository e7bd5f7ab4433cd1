"""Embedded HTTP server that answers requests from a table of stub rules."""

from __future__ import annotations

import json
import socketserver
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

import structlog

from .errors import ServerBindError
from .matching import matches
from .models import ReceivedRequest, StubRule

LOGGER = structlog.get_logger("mock_http_service")


class ThreadedHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


class StubServer:
    """Runs one HTTP listener and dispatches requests against registered rules."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        self._host = host
        self._requested_port = port
        self._rules: list[StubRule] = []
        self._journal: list[ReceivedRequest] = []
        self._httpd: ThreadedHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._logger = LOGGER.bind(host=host)

    @property
    def port(self) -> int:
        if not self._httpd:
            raise ServerBindError("Stub server is not running")
        return self._httpd.server_address[1]

    @property
    def running(self) -> bool:
        return self._httpd is not None

    @property
    def rules(self) -> list[StubRule]:
        return list(self._rules)

    @property
    def journal(self) -> list[ReceivedRequest]:
        return list(self._journal)

    def start(self) -> None:
        if self._httpd:
            return
        self._logger.info("server_starting", port=self._requested_port)
        try:
            httpd = ThreadedHTTPServer((self._host, self._requested_port), self._build_handler_factory())
        except OSError as exc:
            self._logger.error("server_bind_failed", port=self._requested_port, error=str(exc))
            raise ServerBindError(f"Cannot bind stub server to {self._host}:{self._requested_port}: {exc}") from exc
        self._httpd = httpd
        self._thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        self._thread.start()
        self._logger = self._logger.bind(port=httpd.server_address[1])
        self._logger.info("server_started")

    def stop(self) -> None:
        if not self._httpd:
            return
        self._logger.info("server_stopping")
        try:
            self._httpd.shutdown()
            self._httpd.server_close()
        finally:
            if self._thread:
                self._thread.join(timeout=2)
            self._httpd = None
            self._thread = None
        self._logger.info("server_stopped")

    def register_rule(self, rule: StubRule) -> None:
        """Add a rule; an existing rule with the same matcher is replaced."""

        self._rules = [existing for existing in self._rules if existing.request != rule.request]
        self._rules.append(rule)
        self._logger.debug(
            "stub_registered",
            route=rule.request.describe(),
            status=rule.response.status,
        )

    def reset(self) -> None:
        self._rules = []
        self._journal = []

    def find_rule(self, request: ReceivedRequest) -> StubRule | None:
        for rule in reversed(self._rules):
            if matches(rule.request, request):
                return rule
        return None

    def _build_handler_factory(self) -> type[BaseHTTPRequestHandler]:
        stub_server = self

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:  # pragma: no cover - avoid stderr
                stub_server._logger.debug(
                    "http_trace",
                    client_ip=self.client_address[0],
                    message=format % args,
                )

            def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler requirement)
                self._handle()

            def do_POST(self) -> None:  # noqa: N802
                self._handle()

            def do_PUT(self) -> None:  # noqa: N802
                self._handle()

            def do_DELETE(self) -> None:  # noqa: N802
                self._handle()

            def do_PATCH(self) -> None:  # noqa: N802
                self._handle()

            def do_HEAD(self) -> None:  # noqa: N802
                self._handle(head_only=True)

            def do_OPTIONS(self) -> None:  # noqa: N802
                self._handle()

            def _handle(self, *, head_only: bool = False) -> None:
                request_logger = stub_server._logger.bind(method=self.command, url=self.path)
                try:
                    body = self._read_body()
                except ValueError as exc:
                    body = b""
                    malformed = str(exc)
                else:
                    malformed = None
                request = ReceivedRequest(
                    method=self.command,
                    url=self.path,
                    path=self.path.split("?", 1)[0],
                    headers={key: value for key, value in self.headers.items()},
                    body=body,
                )
                stub_server._journal.append(request)
                if malformed:
                    request_logger.warning("request_malformed", error=malformed)
                    self.close_connection = True
                    self._respond_json(HTTPStatus.BAD_REQUEST, {"error": malformed}, head_only=head_only)
                    return
                request_logger.debug("request_received", content_length=len(request.body))
                try:
                    rule = stub_server.find_rule(request)
                    if rule is None:
                        request_logger.warning("request_unmatched")
                        self._respond_json(
                            HTTPStatus.NOT_FOUND,
                            {"error": "No stub matched", "method": request.method, "url": request.url},
                            head_only=head_only,
                        )
                        return
                    self._respond_with_rule(rule, head_only=head_only)
                    request_logger.info("request_served", status=rule.response.status)
                except Exception:
                    request_logger.exception("request_failed")
                    self._respond_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "stub failure"}, head_only=head_only)

            def _read_body(self) -> bytes:
                transfer_encoding = self.headers.get("Transfer-Encoding", "")
                if "chunked" in transfer_encoding.lower():
                    return self._read_chunked()
                raw_length = (self.headers.get("Content-Length") or "0").strip()
                if not raw_length.isdigit():
                    raise ValueError(f"Invalid Content-Length: {raw_length!r}")
                return self.rfile.read(int(raw_length))

            def _read_chunked(self) -> bytes:
                chunks: list[bytes] = []
                while True:
                    size_line = self.rfile.readline()
                    try:
                        size = int(size_line.split(b";", 1)[0].strip(), 16)
                    except ValueError as exc:
                        raise ValueError(f"Invalid chunk size line: {size_line!r}") from exc
                    if size == 0:
                        break
                    chunks.append(self.rfile.read(size))
                    self.rfile.readline()
                # trailers end with an empty line
                while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                    pass
                return b"".join(chunks)

            def _respond_with_rule(self, rule: StubRule, *, head_only: bool = False) -> None:
                response = rule.response
                body_bytes = response.body.encode("utf-8")
                self.send_response(response.status)
                for key, value in response.headers.items():
                    if key.lower() == "content-length":
                        continue
                    self.send_header(key, value)
                self.send_header("Content-Length", str(len(body_bytes)))
                self.end_headers()
                if not head_only:
                    self.wfile.write(body_bytes)

            def _respond_json(self, status: HTTPStatus, payload: dict[str, Any], *, head_only: bool = False) -> None:
                body = json.dumps(payload).encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                if not head_only:
                    self.wfile.write(body)

        return Handler


def describe_rules(rules: list[StubRule]) -> list[str]:
    """Render one ``METHOD URL -> STATUS`` line per rule."""

    if not rules:
        return ["(no stubs configured)"]
    return [f"{rule.request.describe()} -> {rule.response.status}" for rule in rules]
