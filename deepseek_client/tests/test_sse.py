import json

import pytest

from deepseek_client.providers.sse import (
    LineKind,
    StreamDiagnostics,
    classify_line,
    decode_lines,
    decode_stream,
    iter_text_lines,
)


def _chunk(text):
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": text}}]})


def _texts(deltas):
    return [d.text for d in deltas]


@pytest.mark.parametrize(
    "raw,kind,payload",
    [
        ("", LineKind.EMPTY, None),
        ("   \t", LineKind.EMPTY, None),
        ("data:", LineKind.EMPTY, None),
        ("[DONE]", LineKind.SENTINEL, None),
        ("  [DONE]  ", LineKind.SENTINEL, None),
        ("data: [DONE]", LineKind.SENTINEL, None),
        (": keep-alive", LineKind.KEEP_ALIVE, None),
        (":KEEP-ALIVE", LineKind.KEEP_ALIVE, None),
        ("keep-alive", LineKind.KEEP_ALIVE, None),
        (":", LineKind.KEEP_ALIVE, None),
        (": ping", LineKind.KEEP_ALIVE, None),
        ('data:   {"a": 1}', LineKind.PAYLOAD, '{"a": 1}'),
        ('{"a": 1}', LineKind.PAYLOAD, '{"a": 1}'),
    ],
)
def test_classify_line(raw, kind, payload):
    line = classify_line(raw, "keep-alive")
    assert line.kind is kind
    assert line.payload == payload


def test_concatenation_matches_chunk_contents():
    parts = ["Hel", "lo", ", ", "world"]
    lines = [_chunk(p) for p in parts] + ["[DONE]"]
    assert "".join(_texts(decode_lines(lines))) == "Hello, world"


def test_keep_alive_and_empty_lines_do_not_change_output():
    clean = [_chunk("a"), _chunk("b"), _chunk("c"), "data: [DONE]"]
    noisy = ["", ": keep-alive", clean[0], "", "", clean[1], ": KEEP-ALIVE", clean[2], "", clean[3]]
    assert _texts(decode_lines(noisy)) == _texts(decode_lines(clean)) == ["a", "b", "c"]


def test_malformed_chunk_is_dropped_and_counted():
    stats = StreamDiagnostics()
    lines = [_chunk("one"), 'data: {"choices": [', _chunk("two"), "[DONE]"]
    assert _texts(decode_lines(lines, stats)) == ["one", "two"]
    assert stats.received == 3
    assert stats.dropped == 1
    assert stats.emitted == 2
    assert stats.saw_sentinel is True


def test_sentinel_stops_consumption():
    consumed = []

    def source():
        for line in [_chunk("x"), "[DONE]", _chunk("never")]:
            consumed.append(line)
            yield line

    assert _texts(decode_lines(source())) == ["x"]
    assert len(consumed) == 2


def test_end_of_input_without_sentinel_completes():
    stats = StreamDiagnostics()
    assert _texts(decode_lines([_chunk("x"), _chunk("y")], stats)) == ["x", "y"]
    assert stats.saw_sentinel is False


def test_deltas_without_text_are_not_emitted():
    lines = [
        'data: {"choices":[{"index":0,"delta":{"role":"assistant","content":""}}]}',
        _chunk("hi"),
        'data: {"choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}',
        'data: {"choices":[],"usage":{"total_tokens":3}}',
    ]
    deltas = list(decode_lines(lines))
    assert len(deltas) == 1
    assert deltas[0].role == "assistant"
    assert deltas[0].text == "hi"


def test_iter_text_lines_handles_split_multibyte_and_crlf():
    data = "data: 你好\r\n\r\n: keep-alive\rlast".encode("utf-8")
    # 在“你”的 UTF-8 编码中间以及 \r 与 \n 之间切开
    cut_a = data.index("你".encode("utf-8")) + 1
    cut_b = data.index(b"\r\n") + 1
    chunks = [data[:cut_a], data[cut_a:cut_b], data[cut_b:]]
    assert list(iter_text_lines(chunks)) == ["data: 你好", "", ": keep-alive", "last"]


def test_decode_stream_from_bytes():
    body = (_chunk("Hi") + "\n\n" + _chunk(" there") + "\n\ndata: [DONE]\n\n").encode("utf-8")
    chunks = [body[i:i + 7] for i in range(0, len(body), 7)]
    assert "".join(_texts(decode_stream(chunks))) == "Hi there"


def test_sse_comment_lines_are_not_counted_as_dropped():
    stats = StreamDiagnostics()
    lines = [":", _chunk("a"), ": ping", ": keep-alive", _chunk("b"), "[DONE]"]
    assert _texts(decode_lines(lines, stats)) == ["a", "b"]
    assert stats.received == 2
    assert stats.dropped == 0
