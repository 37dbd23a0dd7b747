from __future__ import annotations

from pathlib import Path

import pytest

from twd97_townships.classify.gemini_client import GeminiTownshipClient
from twd97_townships.common.http import HttpClient, RetryConfig
from twd97_townships.common.models import RecordStatus
from twd97_townships.pipeline.orchestrate import run_classification
from twd97_townships.pipeline.parse import parse_coordinates
from twd97_townships.pipeline.projection import build_records

POINTS = Path(__file__).resolve().parents[2] / "tests" / "fixtures" / "points.txt"
TOWNSHIPS = ["彰化市", "鹿港鎮", "員林市", "溪湖鎮"]


class FakeResponse:
    def __init__(self, status_code: int, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


def _reply(text: str) -> FakeResponse:
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})


@pytest.mark.integration
def test_pipeline_survives_http_and_parse_failures(monkeypatch):
    records = build_records(parse_coordinates(POINTS.read_text(encoding="utf-8")))
    http = HttpClient(retry=RetryConfig(max_attempts=1))
    responses = iter(
        [
            _reply('好的：\n```json\n[{"id": 2, "township": "鹿港鎮"}, {"id": 1, "township": "彰化市"}]\n```'),
            FakeResponse(503, {}),
        ]
    )
    monkeypatch.setattr(http.session, "request", lambda **_kwargs: next(responses))
    client = GeminiTownshipClient(
        api_key="k",
        model="m",
        townships=TOWNSHIPS,
        region_name="彰化縣",
        http_client=http,
    )
    progress: list[int] = []

    outcome = run_classification(
        records,
        client,
        valid_townships=TOWNSHIPS,
        chunk_size=2,
        inter_chunk_delay_s=0,
        on_progress=lambda count, _snapshot: progress.append(count),
    )

    assert [record.status for record in outcome.records] == [
        RecordStatus.COMPLETED,
        RecordStatus.COMPLETED,
        RecordStatus.ERROR,
        RecordStatus.ERROR,
    ]
    assert [record.township for record in outcome.records] == ["彰化市", "鹿港鎮", None, None]
    assert outcome.failed_chunks == (1,)
    assert progress == [0, 2, 2, 4]


@pytest.mark.integration
def test_missing_api_key_marks_every_chunk_error():
    records = build_records(parse_coordinates(POINTS.read_text(encoding="utf-8")))
    client = GeminiTownshipClient(api_key="", model="m", townships=TOWNSHIPS, region_name="彰化縣")

    with client:
        outcome = run_classification(
            records,
            client,
            valid_townships=TOWNSHIPS,
            chunk_size=3,
            inter_chunk_delay_s=0,
        )

    assert outcome.failed == len(records)
    assert outcome.failed_chunks == (0, 1)
    assert outcome.processed == len(records)
