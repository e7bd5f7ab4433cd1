from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from helpers import send
from mock_http_service.errors import MappingLoadError
from mock_http_service.mappings import load_mappings
from mock_http_service.service import MockHttpService


def _recordings(tmp_path: Path) -> Path:
    root = tmp_path / "recordings" / "LivySparkBatchTest"
    mappings = root / "mappings"
    files = root / "__files"
    mappings.mkdir(parents=True)
    files.mkdir()

    (files / "batch-0.json").write_text('{"id": 0, "appInfo": {"driverLogUrl": "http://localhost:${port}/log"}}', encoding="utf-8")
    (mappings / "01-batches.json").write_text(
        json.dumps(
            {
                "request": {"method": "GET", "url": "/batches/0"},
                "response": {"status": 200, "headers": {"Content-Type": "application/json"}, "body_file": "batch-0.json"},
            }
        ),
        encoding="utf-8",
    )
    (mappings / "02-submit.yaml").write_text(
        yaml.safe_dump(
            {
                "mappings": [
                    {
                        "request": {"method": "POST", "url": "/batches", "body_json": {"file": "app.jar"}},
                        "response": {"status": 201, "body": "submitted"},
                    },
                    {
                        "request": {"method": "DELETE", "url": "/batches/0"},
                        "response": {"status": 200, "headers": {"X-Batch-Id": 0}, "body": {"msg": "deleted"}},
                    },
                ]
            }
        ),
        encoding="utf-8",
    )
    (mappings / "README.txt").write_text("ignored", encoding="utf-8")
    return root


def test_load_mappings_reads_json_and_yaml(tmp_path: Path) -> None:
    rules = load_mappings(_recordings(tmp_path))

    assert [rule.request.describe() for rule in rules] == [
        "GET /batches/0",
        "POST /batches (json body)",
        "DELETE /batches/0",
    ]
    assert rules[0].response.body.startswith('{"id": 0')
    assert rules[0].response.body_file is None


def test_missing_mappings_directory_yields_no_stubs(tmp_path: Path) -> None:
    assert load_mappings(tmp_path) == []


def test_service_from_mappings_serves_rendered_bodies(tmp_path: Path) -> None:
    with MockHttpService.from_mappings(_recordings(tmp_path)) as service:
        batch, batch_body = send(service, "GET", "/batches/0")
        submitted, submitted_body = send(service, "POST", "/batches", body='{ "file": "app.jar" }')

        assert batch.status == 200
        assert batch.getheader("Content-Type") == "application/json"
        assert json.loads(batch_body)["appInfo"]["driverLogUrl"] == f"http://localhost:{service.port}/log"
        assert (submitted.status, submitted_body) == (201, "submitted")

        deleted, deleted_body = send(service, "DELETE", "/batches/0")
        assert json.loads(deleted_body) == {"msg": "deleted"}
        assert deleted.getheader("X-Batch-Id") == "0"


def test_invalid_mapping_file_is_reported(tmp_path: Path) -> None:
    mappings = tmp_path / "mappings"
    mappings.mkdir()
    (mappings / "broken.yaml").write_text("request: {method: GET}\nresponse: {status: 200}\n", encoding="utf-8")

    with pytest.raises(MappingLoadError, match="broken.yaml"):
        load_mappings(tmp_path)


def test_unparseable_mapping_file_is_reported(tmp_path: Path) -> None:
    mappings = tmp_path / "mappings"
    mappings.mkdir()
    (mappings / "broken.json").write_text('{"request": [', encoding="utf-8")

    with pytest.raises(MappingLoadError):
        load_mappings(tmp_path)


def test_missing_body_file_is_reported(tmp_path: Path) -> None:
    mappings = tmp_path / "mappings"
    mappings.mkdir()
    (mappings / "a.json").write_text(
        json.dumps({"request": {"url": "/a"}, "response": {"body_file": "absent.json"}}),
        encoding="utf-8",
    )

    with pytest.raises(MappingLoadError, match="absent.json"):
        load_mappings(tmp_path)


def test_saved_mappings_can_be_served_again(tmp_path: Path) -> None:
    with MockHttpService() as service:
        service.stub("GET", "/a?b=1", 200, "a")
        service.stub_with_header("GET", "/h", 204, "", {"X-Test": "1"})
        service.stub_with_body("POST", "/p", '{"k": [1, 2]}', 200, "p")
        saved = service.save_mappings(tmp_path)

    assert saved == tmp_path / "mappings" / "mappings.yaml"
    payload = yaml.safe_load(saved.read_text(encoding="utf-8"))
    first = payload["mappings"][0]
    assert first["request"] == {"method": "GET", "url": "/a?b=1"}
    assert first["response"]["body"] == "a"

    with MockHttpService.from_mappings(tmp_path) as restored:
        plain, plain_body = send(restored, "GET", "/a?b=1")
        header, _ = send(restored, "GET", "/h")
        posted, posted_body = send(restored, "POST", "/p", body='{"k":[1,2]}')

        assert (plain.status, plain_body) == (200, "a")
        assert header.status == 204
        assert header.getheader("X-Test") == "1"
        assert (posted.status, posted_body) == (200, "p")


def test_json_mapping_keeps_exponent_numbers(tmp_path: Path) -> None:
    mappings = tmp_path / "mappings"
    mappings.mkdir()
    (mappings / "metrics.json").write_text(
        json.dumps(
            {
                "request": {"method": "POST", "url": "/metrics", "body_json": {"x": 1e20, "y": 1.5e-7}},
                "response": {"status": 200, "body": "stored"},
            }
        ),
        encoding="utf-8",
    )

    rules = load_mappings(tmp_path)
    assert rules[0].request.body_json == {"x": 1e20, "y": 1.5e-7}

    with MockHttpService.from_mappings(tmp_path) as service:
        response, body = send(service, "POST", "/metrics", body='{"x": 1e+20, "y": 1.5e-07}')

        assert (response.status, body) == (200, "stored")
