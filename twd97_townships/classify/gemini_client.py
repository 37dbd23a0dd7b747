"""Gemini generateContent client for township classification."""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import Any, Sequence

from twd97_townships.classify.prompt import build_township_prompt
from twd97_townships.classify.response import extract_json_array
from twd97_townships.common.errors import ClassificationError, ResponseParseError
from twd97_townships.common.http import HttpClient, RetryConfig, TimeoutConfig
from twd97_townships.common.logging import LOGGER_NAMESPACE
from twd97_townships.common.models import CoordinateRecord

logger = logging.getLogger(f"{LOGGER_NAMESPACE}.gemini")

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


def response_text(payload: dict[str, Any]) -> str:
    """Join the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback") or {}
        reason = feedback.get("blockReason", "no candidates")
        raise ResponseParseError(f"Empty Gemini response: {reason}")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text.strip():
        raise ResponseParseError("Gemini response has no text parts")
    return text


class GeminiTownshipClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        townships: Sequence[str],
        region_name: str,
        grounding: bool = True,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: TimeoutConfig | None = None,
        http_client: HttpClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.townships = list(townships)
        self.region_name = region_name
        self.grounding = grounding
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self.http_client = http_client or HttpClient(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        cfg: dict,
        *,
        grounding: bool | None = None,
        http_client: HttpClient | None = None,
    ) -> "GeminiTownshipClient":
        classifier_cfg = cfg["classifier"]
        timeout = TimeoutConfig(read=float(classifier_cfg["timeout_seconds"]))
        owns_client = http_client is None
        if http_client is None:
            http_client = HttpClient(
                timeout=timeout,
                retry=RetryConfig(max_attempts=int(classifier_cfg["max_attempts"])),
            )
        client = cls(
            api_key=os.environ.get(classifier_cfg["api_key_env"], ""),
            model=classifier_cfg["model"],
            townships=cfg["region"]["townships"],
            region_name=cfg["region"]["name"],
            grounding=classifier_cfg["grounding"] if grounding is None else grounding,
            endpoint=classifier_cfg["endpoint"],
            timeout=timeout,
            http_client=http_client,
        )
        client._owns_client = owns_client
        return client

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "GeminiTownshipClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def build_request(self, batch: Sequence[CoordinateRecord]) -> dict[str, Any]:
        prompt = build_township_prompt(batch, region_name=self.region_name, townships=self.townships)
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0},
        }
        if self.grounding:
            body["tools"] = [{"google_search": {}}]
        return body

    def classify(self, batch: Sequence[CoordinateRecord]) -> list[dict[str, Any]]:
        if not self.api_key:
            raise ClassificationError("API_KEY_MISSING")
        if not batch:
            return []

        payload = self.http_client.post_json(
            self.url,
            json_body=self.build_request(batch),
            headers={"x-goog-api-key": self.api_key},
            timeout=self.timeout,
        )
        text = response_text(payload)
        logger.debug("raw model reply for ids %s: %s", [record.id for record in batch], text)
        return extract_json_array(text)
