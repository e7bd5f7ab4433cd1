"""Pydantic models describing stub rules served by the mock HTTP service."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

ANY_METHOD = "ANY"


class RequestMatcher(BaseModel):
    """Criteria an incoming request must satisfy for a rule to apply."""

    method: str = ANY_METHOD
    url: str
    body_json: Any = None
    match_body: bool = False

    @model_validator(mode="before")
    @classmethod
    def _body_json_implies_match(cls, data: Any) -> Any:
        if isinstance(data, dict) and "body_json" in data and "match_body" not in data:
            data = {**data, "match_body": True}
        return data

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.strip().upper() or ANY_METHOD

    def describe(self) -> str:
        suffix = " (json body)" if self.match_body else ""
        return f"{self.method} {self.url}{suffix}"


class StubResponse(BaseModel):
    """Response returned when a rule matches."""

    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    body_file: str | None = None

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        return value

    @field_validator("body", mode="before")
    @classmethod
    def _serialize_structured_body(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value


class StubRule(BaseModel):
    """Single request-to-response mapping."""

    request: RequestMatcher
    response: StubResponse


class StubMappings(BaseModel):
    """Collection of rules as stored in a mappings file."""

    mappings: list[StubRule] = Field(default_factory=list)

    def as_serializable(self) -> dict[str, Any]:
        """Return a JSON/YAML friendly payload."""

        return self.model_dump(mode="json", exclude_defaults=True)


@dataclass
class ReceivedRequest:
    method: str
    url: str
    path: str
    headers: dict[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
