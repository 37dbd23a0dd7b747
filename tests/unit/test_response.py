import pytest

from twd97_townships.classify.response import extract_json_array, strip_code_fences
from twd97_townships.common.errors import ResponseParseError


def test_extracts_array_from_code_fence():
    text = '```json\n[{"id": 1, "township": "彰化市"}]\n```'

    assert extract_json_array(text) == [{"id": 1, "township": "彰化市"}]


def test_skips_bracketed_prose_before_the_array():
    text = '[注意] 根據搜尋結果：\n[{"id": 4, "township": "員林市"}]\n以上 [完]'

    assert extract_json_array(text) == [{"id": 4, "township": "員林市"}]


def test_missing_array_raises():
    with pytest.raises(ResponseParseError):
        extract_json_array("抱歉，我無法判斷。")


def test_object_reply_is_not_an_array():
    with pytest.raises(ResponseParseError):
        extract_json_array('{"id": 1, "township": "彰化市"}')


def test_strip_code_fences():
    assert strip_code_fences("```JSON\n[]\n```") == "[]"


def test_citation_markers_do_not_hide_the_payload():
    text = '彰化市政府資料 [1] 顯示：\n[{"id": 7, "township": "彰化市"}] [2]'

    assert extract_json_array(text) == [{"id": 7, "township": "彰化市"}]


def test_falls_back_to_first_array_without_objects():
    assert extract_json_array("結果 [] 以及 [3]") == []
