"""流式响应（text/event-stream）解码。

处理分两层：

1. iter_text_lines: 把传输层的原始字节块切分为文本行。使用增量 UTF-8 解码器，
   跨块截断的多字节字符不会损坏；支持 \\n、\\r\\n、\\r 三种换行。
2. decode_lines: 逐行分类后解码为 Delta。每一行先由 classify_line 归类为
   EMPTY / SENTINEL / KEEP_ALIVE / PAYLOAD 之一，再按类别处理：

   - EMPTY: 帧分隔，跳过。
   - SENTINEL: 收到 [DONE]，正常结束，不再读取后续输入。
   - KEEP_ALIVE: 心跳或其他 SSE 注释行，跳过，不算解析失败。
   - PAYLOAD: 解析 JSON；失败的块记录日志后丢弃，继续处理下一行。

上游在没有发送 [DONE] 的情况下关闭连接，同样视为正常结束。
解码器只产出增量，不负责拼接最终消息。
"""

import codecs
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

from deepseek_client.config.settings import settings
from deepseek_client.domain.exceptions import DecodingFailure
from deepseek_client.domain.models import Delta
from deepseek_client.infrastructure.logging.logger import logger, redact
from deepseek_client.providers.codec import decode_streaming_chunk

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class LineKind(Enum):
    EMPTY = "empty"
    SENTINEL = "sentinel"
    KEEP_ALIVE = "keep_alive"
    PAYLOAD = "payload"


@dataclass(frozen=True)
class StreamLine:
    """一行流式数据的分类结果，只有 PAYLOAD 携带 payload。"""

    kind: LineKind
    payload: Optional[str] = None


@dataclass
class StreamDiagnostics:
    """单次流式调用的诊断计数。

    - received: 进入 JSON 解析的数据行数。
    - emitted: 产出的带文本增量数。
    - dropped: 解析失败被丢弃的数据行数。
    - saw_sentinel: 是否收到 [DONE]（否则为连接关闭结束）。
    """

    received: int = 0
    emitted: int = 0
    dropped: int = 0
    saw_sentinel: bool = False


def _is_keep_alive(line: str, token: str) -> bool:
    # 以 ":" 开头的行是 SSE 注释（": keep-alive"、": ping"、":"），一律视为心跳
    return line.startswith(":") or line.lower() == token.lower()


def classify_line(raw: str, keepalive_token: Optional[str] = None) -> StreamLine:
    """对单行做归类，不做 JSON 解析。"""

    token = keepalive_token or settings.keepalive_token
    line = raw.strip()
    if not line:
        return StreamLine(LineKind.EMPTY)
    if line == DONE_SENTINEL:
        return StreamLine(LineKind.SENTINEL)
    if _is_keep_alive(line, token):
        return StreamLine(LineKind.KEEP_ALIVE)

    payload = line
    if payload.startswith(DATA_PREFIX):
        payload = payload[len(DATA_PREFIX):].strip()
    if not payload:
        return StreamLine(LineKind.EMPTY)
    if payload == DONE_SENTINEL:
        return StreamLine(LineKind.SENTINEL)
    return StreamLine(LineKind.PAYLOAD, payload)


def iter_text_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """把原始字节块切分为文本行（不含换行符），末尾未换行的残行在输入结束时输出。"""

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    for chunk in chunks:
        text = pending + decoder.decode(chunk)
        carry = ""
        # 末尾的 \r 可能与下一块开头的 \n 组成 \r\n
        if text.endswith("\r"):
            text, carry = text[:-1], "\r"
        *lines, pending = _LINE_BREAK.split(text)
        pending += carry
        yield from lines

    *lines, rest = _LINE_BREAK.split(pending + decoder.decode(b"", final=True))
    yield from lines
    if rest:
        yield rest


def decode_lines(
    lines: Iterable[str],
    diagnostics: Optional[StreamDiagnostics] = None,
    keepalive_token: Optional[str] = None,
) -> Iterator[Delta]:
    """把已切分的文本行解码为 assistant 增量，按输入顺序逐个产出。"""

    stats = diagnostics if diagnostics is not None else StreamDiagnostics()
    for raw in lines:
        line = classify_line(raw, keepalive_token)
        if line.kind is LineKind.SENTINEL:
            stats.saw_sentinel = True
            return
        if line.kind is not LineKind.PAYLOAD:
            continue

        stats.received += 1
        try:
            delta = decode_streaming_chunk(line.payload)
        except DecodingFailure as e:
            stats.dropped += 1
            logger.warning(
                "Dropped malformed stream chunk",
                extra={"extra": {"reason": e.message, "payload": redact(line.payload[:200])}},
            )
            continue
        if delta.text:
            stats.emitted += 1
            yield Delta(role="assistant", text=delta.text)


def decode_stream(
    chunks: Iterable[bytes],
    diagnostics: Optional[StreamDiagnostics] = None,
    keepalive_token: Optional[str] = None,
) -> Iterator[Delta]:
    """字节块 -> 增量的完整管线。"""

    return decode_lines(iter_text_lines(chunks), diagnostics, keepalive_token)
