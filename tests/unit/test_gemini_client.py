from __future__ import annotations

import pytest

from twd97_townships.classify.gemini_client import GeminiTownshipClient, response_text
from twd97_townships.classify.prompt import build_township_prompt
from twd97_townships.common.errors import ClassificationError, ResponseParseError
from twd97_townships.common.models import CoordinateRecord

TOWNSHIPS = ["彰化市", "鹿港鎮"]


class FakeHttpClient:
    def __init__(self, payload):
        self.payload = payload
        self.requests: list[dict] = []
        self.closed = False

    def post_json(self, url, *, json_body, headers=None, timeout=None):
        self.requests.append({"url": url, "json_body": json_body, "headers": headers})
        return self.payload

    def close(self):
        self.closed = True


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _batch() -> list[CoordinateRecord]:
    return [
        CoordinateRecord(id=1, original_x=204512.3, original_y=2662310.8, lat=24.0812345678, lng=120.5412345678),
        CoordinateRecord(id=2, original_x=201234.5, original_y=2655678.9, lat=24.05, lng=120.43),
    ]


def _client(http_client, **kwargs) -> GeminiTownshipClient:
    options = {
        "api_key": "test-key",
        "model": "gemini-2.5-flash",
        "townships": TOWNSHIPS,
        "region_name": "彰化縣",
        "http_client": http_client,
    }
    options.update(kwargs)
    return GeminiTownshipClient(**options)


def test_classify_posts_prompt_and_parses_reply():
    http = FakeHttpClient(_reply('```json\n[{"id": 1, "township": "彰化市"}, {"id": 2, "township": "鹿港鎮"}]\n```'))
    client = _client(http)

    result = client.classify(_batch())

    assert result == [{"id": 1, "township": "彰化市"}, {"id": 2, "township": "鹿港鎮"}]
    request = http.requests[0]
    assert request["url"].endswith("/models/gemini-2.5-flash:generateContent")
    assert request["headers"] == {"x-goog-api-key": "test-key"}
    prompt = request["json_body"]["contents"][0]["parts"][0]["text"]
    assert "ID: 1, Lat: 24.0812346, Lng: 120.5412346" in prompt
    assert "[彰化市,鹿港鎮]" in prompt


def test_grounding_toggles_search_tool():
    grounded = _client(FakeHttpClient({}), grounding=True).build_request(_batch())
    plain = _client(FakeHttpClient({}), grounding=False).build_request(_batch())

    assert grounded["tools"] == [{"google_search": {}}]
    assert "tools" not in plain


def test_missing_api_key_fails_before_any_request():
    http = FakeHttpClient(_reply("[]"))

    with pytest.raises(ClassificationError, match="API_KEY_MISSING"):
        _client(http, api_key="").classify(_batch())
    assert http.requests == []


def test_blocked_prompt_raises_parse_error():
    with pytest.raises(ResponseParseError):
        response_text({"promptFeedback": {"blockReason": "SAFETY"}})


def test_injected_http_client_is_not_closed():
    http = FakeHttpClient(_reply("[]"))

    with _client(http):
        pass

    assert http.closed is False


def test_from_config_reads_key_from_environment(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "env-key")
    cfg = {
        "region": {"name": "彰化縣", "townships": TOWNSHIPS},
        "classifier": {
            "endpoint": "https://example.test/v1beta/",
            "model": "m",
            "api_key_env": "TEST_GEMINI_KEY",
            "grounding": True,
            "timeout_seconds": 5,
            "max_attempts": 1,
        },
    }

    client = GeminiTownshipClient.from_config(cfg, grounding=False, http_client=FakeHttpClient({}))

    assert client.api_key == "env-key"
    assert client.grounding is False
    assert client.url == "https://example.test/v1beta/models/m:generateContent"


def test_prompt_lists_every_record():
    prompt = build_township_prompt(_batch(), region_name="彰化縣", townships=TOWNSHIPS)

    assert prompt.count("ID: ") == 2
    assert "彰化縣" in prompt
