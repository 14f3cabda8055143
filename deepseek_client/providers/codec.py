"""DeepSeek 消息编解码。

本模块负责“DeepSeek JSON ⇄ 项目内部统一模型”的转换：

1. encode_request: 会话快照 + 模型 + 流式标志 -> 请求体字节。
2. decode_buffered_response: 完整响应体 -> ChatResponse（取第一个 choice 的 message）。
3. decode_streaming_chunk: 单条流式事件的 JSON -> Delta。

响应结构用 pydantic 模型校验，JSON 错误和结构不符统一抛出 DecodingFailure。
线上字段名统一为小写下划线风格（model、messages、stream、finish_reason 等）。
"""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from deepseek_client.domain.exceptions import DecodingFailure, EncodingFailure, NoChoicesPresent
from deepseek_client.domain.models import (
    ChatChoice,
    ChatRequest,
    ChatResponse,
    ChatUsage,
    Delta,
    Message,
    Role,
)
from deepseek_client.providers.registry import get_model_config


class _WireMessage(BaseModel):
    content: Optional[str] = None
    role: Role
    name: Optional[str] = None


class _WireChoice(BaseModel):
    index: int = 0
    message: _WireMessage
    finish_reason: Optional[str] = None


class _WireUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class _WireResponse(BaseModel):
    id: str
    created: datetime
    model: str
    choices: List[_WireChoice]
    usage: Optional[_WireUsage] = None


class _WireDelta(BaseModel):
    role: Optional[Role] = None
    content: Optional[str] = None


class _WireChunkChoice(BaseModel):
    index: int = 0
    delta: _WireDelta = Field(default_factory=_WireDelta)
    finish_reason: Optional[str] = None


class _WireChunk(BaseModel):
    id: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[_WireChunkChoice] = Field(default_factory=list)


def message_to_payload(message: Message) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"content": message.content, "role": message.role}
    if message.name:
        payload["name"] = message.name
    return payload


def encode_request(messages: Iterable[Message], model: str, stream: bool) -> bytes:
    """将会话快照编码为请求体。

    model 为逻辑模型名，由 registry 映射为 DeepSeek 模型 ID。
    只有遇到无法表示的值（如孤立代理字符、NaN）时才会抛出 EncodingFailure。
    """

    model_cfg = get_model_config(model)
    payload = {
        "messages": [message_to_payload(m) for m in messages],
        "model": model_cfg.provider_model,
        "stream": stream,
    }
    try:
        return json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodingFailure(f"Cannot encode request: {e}") from e


def encode_chat_request(request: ChatRequest) -> bytes:
    return encode_request(request.messages, request.model, request.stream)


def _load_json(raw: Union[bytes, str]) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodingFailure(f"Malformed JSON: {e}") from e


def parse_response(raw: Union[bytes, str]) -> ChatResponse:
    """解析完整的非流式响应体。"""

    try:
        wire = _WireResponse.model_validate(_load_json(raw))
    except SchemaError as e:
        raise DecodingFailure(f"Unexpected response schema: {e.error_count()} error(s)") from e

    choices = [
        ChatChoice(
            index=ch.index,
            message=Message(
                content=ch.message.content or "",
                role=ch.message.role,
                name=ch.message.name,
            ),
            finish_reason=ch.finish_reason,
        )
        for ch in wire.choices
    ]
    usage = None
    if wire.usage is not None:
        usage = ChatUsage(
            prompt_tokens=wire.usage.prompt_tokens,
            completion_tokens=wire.usage.completion_tokens,
            total_tokens=wire.usage.total_tokens,
        )
    return ChatResponse(id=wire.id, created=wire.created, model=wire.model, choices=choices, usage=usage)


def decode_buffered_response(raw: Union[bytes, str]) -> Message:
    """解析响应并返回第一个 choice 的消息；choices 为空时抛出 NoChoicesPresent。"""

    response = parse_response(raw)
    if not response.choices:
        raise NoChoicesPresent()
    return response.choices[0].message


def decode_streaming_chunk(raw: Union[bytes, str]) -> Delta:
    """解析单条流式事件，返回第一个 choice 的 delta。

    没有 choices 的事件（例如只携带 usage 的收尾事件）返回空 Delta。
    """

    try:
        wire = _WireChunk.model_validate(_load_json(raw))
    except SchemaError as e:
        raise DecodingFailure(f"Unexpected chunk schema: {e.error_count()} error(s)") from e
    if not wire.choices:
        return Delta()
    delta = wire.choices[0].delta
    return Delta(role=delta.role, text=delta.content)
