"""DeepSeek 对话客户端。

本模块负责：

1. 持有会话（Conversation），并保证同一时刻只有一个进行中的请求。
2. 从当前会话构造请求（Authorization/Content-Type/Accept 头 + 编码后的请求体）。
3. 非流式：一次性解码响应，把回答写入会话。
4. 流式：返回 AssistantStream，由其驱动解码器并在自然结束时写入回答。

会话只在请求体可以成功编码之后才追加 user 消息；追加之后的失败（网络、状态码、
解码）不会回滚已追加的 user 消息。
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from deepseek_client.config.settings import settings
from deepseek_client.domain.conversation import Conversation
from deepseek_client.domain.exceptions import ConcurrentSendRejected, ValidationError
from deepseek_client.domain.models import ChatRequest, ChatResult, Message
from deepseek_client.infrastructure.logging.logger import logger
from deepseek_client.providers.base import HttpRequest, Transport
from deepseek_client.providers.codec import decode_buffered_response, encode_chat_request
from deepseek_client.providers.registry import DEEPSEEK_CONFIG, get_model_config
from deepseek_client.providers.streaming import AssistantStream
from deepseek_client.providers.transport import HttpxTransport, raise_for_status

NO_SYSTEM_MESSAGE_WARNING = (
    "No system message was added. DeepSeek chat mode does better with a system message."
)


class ChatClient:
    """DeepSeek 客户端实现。

    - messages: 客户端独占会话的只读快照。
    - send_*: 对外调用入口，同一实例上的并发调用会被 ConcurrentSendRejected 拒绝。
    """

    name = "deepseek"

    def __init__(
        self,
        cfg=settings,
        transport: Optional[Transport] = None,
        conversation: Optional[Conversation] = None,
    ):
        self._settings = cfg
        self._transport = transport or HttpxTransport(cfg)
        self._conversation = conversation if conversation is not None else Conversation()
        self._send_lock = threading.Lock()

    @property
    def messages(self) -> Tuple[Message, ...]:
        """会话历史的只读快照；修改只能经由 send_* 与 reset。"""

        return self._conversation.snapshot()

    def reset(self) -> None:
        """清空会话，开始新的对话；有进行中的请求时抛出 ConcurrentSendRejected。"""

        with self._exclusive():
            self._conversation.clear()

    def send_system_message(self, text: str) -> ChatResult:
        """追加 system 消息；会话非空时抛出 OrderingViolation。"""

        with self._exclusive():
            message = self._conversation.add_system_message(text)
        return ChatResult(message=message)

    def send_user_message_buffered(
        self,
        text: str,
        model: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 校验密钥与模型，编码请求体后追加 user 消息。
        2. 发送请求，非 200 状态码抛出 UpstreamRejected。
        3. 解码响应，取第一个 choice 的消息作为 assistant 回答写入会话。
        """

        model = model or self._settings.default_model
        with self._exclusive():
            request, first = self._prepare(text, model, name, stream=False)
            self._log(logging.INFO, "Request dispatched", model=model, messages=len(self._conversation), stream=False)
            status, body = self._transport.execute(request)
            raise_for_status(status, body)
            reply = decode_buffered_response(body)
            message = self._conversation.add_assistant_message(reply.content)
        self._log(logging.INFO, "Buffered reply appended", model=model, length=len(message.content))
        return ChatResult(message=message, warning=NO_SYSTEM_MESSAGE_WARNING if first else None)

    def send_user_message_streaming(
        self,
        text: str,
        model: Optional[str] = None,
        name: Optional[str] = None,
    ) -> AssistantStream:
        """执行一次流式对话调用，返回逐步产出 Delta 的 AssistantStream。

        连接在第一次取值时建立；非 200 状态码会在第一次取值时抛出 UpstreamRejected。
        并发锁在本方法内获取，由 AssistantStream 在完成、失败或 close() 时释放，
        推荐用 with 语句确保提前退出时也会释放。
        """

        model = model or self._settings.default_model
        self._acquire()
        try:
            request, first = self._prepare(text, model, name, stream=True)
        except BaseException:
            self._send_lock.release()
            raise
        return AssistantStream(
            transport=self._transport,
            request=request,
            conversation=self._conversation,
            release=self._send_lock.release,
            warning=NO_SYSTEM_MESSAGE_WARNING if first else None,
            keepalive_token=getattr(self._settings, "keepalive_token", None),
            model=model,
        )

    def _prepare(self, text: str, model: str, name: Optional[str], stream: bool):
        """构造请求并追加 user 消息，返回 (HttpRequest, 是否为会话第一条消息)。"""

        api_key = getattr(self._settings, "deepseek_api_key", None)
        if not api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_API_KEY", message="DEEPSEEK_API_KEY not set")
        get_model_config(model)

        pending = Message(content=text, role="user", name=name)
        envelope = ChatRequest(messages=self._conversation.snapshot() + (pending,), model=model, stream=stream)
        body = encode_chat_request(envelope)
        _, first = self._conversation.add_user_message(text, name)

        base = getattr(self._settings, "deepseek_base_url", None) or DEEPSEEK_CONFIG.base_url
        request = HttpRequest(
            url=f"{base.rstrip('/')}{DEEPSEEK_CONFIG.completions_path}",
            body=body,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        return request, first

    def _acquire(self) -> None:
        if not self._send_lock.acquire(blocking=False):
            raise ConcurrentSendRejected()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        self._acquire()
        try:
            yield
        finally:
            self._send_lock.release()

    @staticmethod
    def _log(level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"provider": ChatClient.name}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
