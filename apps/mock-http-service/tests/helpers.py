from __future__ import annotations

from http.client import HTTPConnection, HTTPResponse

from mock_http_service.service import MockHttpService


def send(
    service: MockHttpService,
    method: str,
    url: str,
    body: str | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[HTTPResponse, str]:
    connection = HTTPConnection("127.0.0.1", service.port, timeout=2)
    try:
        connection.request(method, url, body=body, headers=headers or {})
        response = connection.getresponse()
        payload = response.read().decode("utf-8")
    finally:
        connection.close()
    return response, payload
