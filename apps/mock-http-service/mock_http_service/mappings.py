"""Loading and saving stub mappings on disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import MappingLoadError
from .models import StubMappings, StubRule

MAPPINGS_ROOT = "mappings"
FILES_ROOT = "__files"
MAPPING_SUFFIXES = {".json", ".yaml", ".yml"}
SAVED_MAPPINGS_FILE = "mappings.yaml"


def load_mappings(root: Path) -> list[StubRule]:
    """Read every mapping file below ``root/mappings`` in name order.

    Response ``body_file`` entries are resolved against ``root/__files`` and
    inlined into the rule body.
    """

    mappings_dir = root / MAPPINGS_ROOT
    if not mappings_dir.is_dir():
        return []
    rules: list[StubRule] = []
    for path in sorted(mappings_dir.iterdir()):
        if path.suffix.lower() not in MAPPING_SUFFIXES or not path.is_file():
            continue
        for rule in _load_file(path):
            rules.append(_inline_body_file(rule, root / FILES_ROOT, path))
    return rules


def save_mappings(root: Path, rules: list[StubRule]) -> Path:
    mappings_dir = root / MAPPINGS_ROOT
    mappings_dir.mkdir(parents=True, exist_ok=True)
    destination = mappings_dir / SAVED_MAPPINGS_FILE
    payload = StubMappings(mappings=rules).as_serializable()
    destination.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return destination


def _load_file(path: Path) -> list[StubRule]:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            payload: Any = json.loads(text) if text.strip() else None
        else:
            payload = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise MappingLoadError(f"Mapping file {path} cannot be parsed: {exc}") from exc
    if payload is None:
        return []
    if not isinstance(payload, dict):
        raise MappingLoadError(f"Mapping file {path} must contain a mapping")
    if "mappings" not in payload:
        payload = {"mappings": [payload]}
    try:
        return StubMappings.model_validate(payload).mappings
    except ValidationError as exc:
        raise MappingLoadError(f"Mapping file {path} is invalid: {exc}") from exc


def _inline_body_file(rule: StubRule, files_dir: Path, source: Path) -> StubRule:
    body_file = rule.response.body_file
    if not body_file:
        return rule
    body_path = files_dir / body_file
    if not body_path.is_file():
        raise MappingLoadError(f"Body file {body_path} referenced by {source} does not exist")
    response = rule.response.model_copy(
        update={"body": body_path.read_text(encoding="utf-8"), "body_file": None}
    )
    return rule.model_copy(update={"response": response})
