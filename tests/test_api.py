"""HTTP tests for the pathway assignment endpoints."""

import json
import re
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from pathclass.api import create_app
from pathclass.classification import BufferedProgressChannel
from pathclass.config.models import (
    CacheSettings,
    ClassificationOptions,
    PathclassConfig,
    ServerSettings,
)
from pathclass.pipeline import ClassificationPipeline

ROWS = [
    {"Pathway": "Wnt signaling", "Source": "KEGG", "Species": "Homo sapiens", "UniProt IDS": "P1"},
    {
        "Pathway": "Glycolysis",
        "Pathway Class": "Metabolism",
        "Subclass": "Carbohydrate metabolism",
        "Source": "Reactome",
    },
]


def _config(**server: Any) -> PathclassConfig:
    return PathclassConfig(
        cache=CacheSettings(enabled=False),
        classification=ClassificationOptions(retry_delay_seconds=0),
        server=ServerSettings(**server),
    )


class ExplodingPipeline:
    async def process(self, *_: Any, **__: Any) -> None:
        raise RuntimeError("boom")

    async def aclose(self) -> None:
        return None


@pytest.fixture
def client(scripted_backend) -> TestClient:
    config = _config()
    pipeline = ClassificationPipeline.from_config(config, backend=scripted_backend())
    return TestClient(create_app(pipeline, config=config))


def _events(body: str) -> List[Dict[str, Any]]:
    chunks = [chunk for chunk in body.split("\n\n") if chunk.strip()]
    assert all(chunk.startswith("data: ") for chunk in chunks)
    return [json.loads(chunk[len("data: ") :]) for chunk in chunks]


def test_assign_returns_sorted_table(client: TestClient) -> None:
    response = client.post("/api/pathways-assign", json={"pathways": ROWS, "resetCache": False})

    assert response.status_code == 200
    body = response.json()
    assert body["totalPathways"] == 2
    assert re.fullmatch(r"\d+\.\d{2}", body["processingTime"])
    assert body["tsv"].split("\n")[0].endswith("AI Class Assigned\tAI Subclass Assigned")
    assert [row["Pathway"] for row in body["preview"]] == ["Glycolysis", "Wnt signaling"]
    assert "UniProt IDS" not in body["preview"][0]
    assert body["preview"][0]["AI Subclass Assigned"] == "Carbohydrate metabolism"


@pytest.mark.parametrize(
    "payload",
    [{"pathways": []}, {"pathways": "Glycolysis"}, {}, {"pathways": [{"Pathway": ""}]}, [1, 2]],
)
def test_assign_rejects_invalid_payloads(client: TestClient, payload: Any) -> None:
    response = client.post("/api/pathways-assign", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or empty pathways data"}


def test_assign_rejects_malformed_json(client: TestClient) -> None:
    response = client.post(
        "/api/pathways-assign",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400


def test_assign_only_allows_post(client: TestClient) -> None:
    for path in ("/api/pathways-assign", "/api/pathways-assign-stream"):
        response = client.get(path)

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}
        assert "POST" in response.headers["allow"]


def test_assign_accepts_numeric_cells(client: TestClient) -> None:
    rows = [{"Pathway": "Wnt signaling", "Source": "KEGG", "UniProt IDS": 12345, "URL": 7.5}]

    response = client.post("/api/pathways-assign", json={"pathways": rows})

    assert response.status_code == 200
    data_line = response.json()["tsv"].split("\n")[1]
    assert "\t12345\t" in data_line
    assert "\t7.5\t" in data_line


def test_assign_buffers_progress_events(scripted_backend) -> None:
    config = _config()
    pipeline = ClassificationPipeline.from_config(config, backend=scripted_backend())
    channels: List[Any] = []
    original_process = pipeline.process

    async def recording_process(records: Any, **kwargs: Any) -> Any:
        channels.append(kwargs["channel"])
        return await original_process(records, **kwargs)

    pipeline.process = recording_process  # type: ignore[method-assign]
    client = TestClient(create_app(pipeline, config=config))

    response = client.post("/api/pathways-assign", json={"pathways": ROWS})

    assert response.status_code == 200
    (channel,) = channels
    assert isinstance(channel, BufferedProgressChannel)
    assert channel.events[0]["message"] == "Starting pathway classification..."
    assert channel.events[-1]["percentage"] == 100


def test_oversized_body_is_rejected(scripted_backend) -> None:
    config = _config(max_body_mb=1)
    pipeline = ClassificationPipeline.from_config(config, backend=scripted_backend())
    client = TestClient(create_app(pipeline, config=config))
    huge = [{"Pathway": "x" * 1024, "Source": "KEGG"}] * 1100

    response = client.post("/api/pathways-assign", json={"pathways": huge})

    assert response.status_code == 413


def test_unexpected_errors_return_generic_500() -> None:
    app = create_app(ExplodingPipeline(), config=_config())
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/api/pathways-assign", json={"pathways": ROWS})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


def test_stream_emits_progress_then_complete(client: TestClient) -> None:
    response = client.post("/api/pathways-assign-stream", json={"pathways": ROWS})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _events(response.text)
    assert events[0]["type"] == "progress" and events[0]["processed"] == 0
    assert any(event.get("message") == "Processing batch 1/1" for event in events)
    final = events[-1]
    assert final["type"] == "complete"
    assert final["totalPathways"] == 2
    assert set(final) == {"type", "preview", "tsv", "processingTime", "totalPathways"}


def test_stream_reports_invalid_input_as_single_event(client: TestClient) -> None:
    response = client.post("/api/pathways-assign-stream", json={"pathways": []})

    assert _events(response.text) == [{"error": "Invalid or empty pathways data"}]


def test_stream_reports_internal_errors_as_single_event() -> None:
    client = TestClient(create_app(ExplodingPipeline(), config=_config()))

    response = client.post("/api/pathways-assign-stream", json={"pathways": ROWS})

    assert _events(response.text) == [{"error": "Internal Server Error"}]
