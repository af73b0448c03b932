import json

import pytest

from app.archope.modules.chat.sse import SSEAccumulator, extract_delta_content


def _event(content):
    return ("data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n\n").encode("utf-8")


STREAM = (
    b": keep-alive\n\n"
    + _event("Xin chào, ")
    + _event("mình là trợ lý ARC HOPE.")
    + b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
    + b"data: [DONE]\n\n"
)


@pytest.mark.parametrize("size", [1, 2, 3, 7, 64, len(STREAM)])
def test_any_chunking_gives_same_text(size):
    acc = SSEAccumulator()
    for i in range(0, len(STREAM), size):
        acc.feed(STREAM[i:i + size])
    assert acc.finish() == "Xin chào, mình là trợ lý ARC HOPE."
    assert acc.done is True


def test_multibyte_character_split_across_chunks():
    data = _event("ồ")
    cut = data.index("ồ".encode("utf-8")) + 1
    acc = SSEAccumulator()
    acc.feed(data[:cut])
    acc.feed(data[cut:])
    assert acc.finish() == "ồ"


def test_crlf_and_comments_and_other_fields():
    acc = SSEAccumulator()
    acc.feed(b"event: message\r\n: ping\r\n" + _event("ok").replace(b"\n", b"\r\n"))
    assert acc.finish() == "ok"


def test_malformed_json_is_skipped():
    acc = SSEAccumulator()
    acc.feed(b"data: {not json}\n\n" + _event("fine"))
    assert acc.finish() == "fine"
    assert acc.skipped == 1


def test_lines_after_done_are_ignored():
    acc = SSEAccumulator()
    acc.feed(_event("a") + b"data: [DONE]\n\n" + _event("b"))
    assert acc.finish() == "a"


def test_trailing_line_without_newline_is_flushed():
    acc = SSEAccumulator()
    acc.feed(_event("tail").rstrip(b"\n"))
    assert acc.text == ""
    assert acc.finish() == "tail"


def test_extract_delta_content_shapes():
    assert extract_delta_content({"choices": [{"delta": {"content": "x"}}]}) == "x"
    assert extract_delta_content({"choices": []}) is None
    assert extract_delta_content({"choices": [{"delta": {}}]}) is None
    assert extract_delta_content(["not", "a", "dict"]) is None
