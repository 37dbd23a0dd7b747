"""Prompt text for township classification."""

from __future__ import annotations

from typing import Sequence

from twd97_townships.common.models import CoordinateRecord

RESPONSE_EXAMPLE = '[{"id": 1, "township": "彰化市"}]'


def format_record_line(record: CoordinateRecord) -> str:
    return f"ID: {record.id}, Lat: {record.lat:.7f}, Lng: {record.lng:.7f}"


def build_township_prompt(
    batch: Sequence[CoordinateRecord],
    *,
    region_name: str,
    townships: Sequence[str],
) -> str:
    items_text = "\n".join(format_record_line(record) for record in batch)
    example = RESPONSE_EXAMPLE.replace("彰化市", townships[0]) if townships else RESPONSE_EXAMPLE
    return (
        f"請辨識以下座標位於{region_name}哪個鄉鎮市區，只能從下列名稱中選擇：\n"
        f"[{','.join(townships)}]\n\n"
        "資料：\n"
        f"{items_text}\n\n"
        f"請只回傳 JSON 陣列格式：{example}，不要有解釋。"
    )
