"""流式回答的迭代器对象。

AssistantStream 把一次流式调用建模为一个显式资源：

- 迭代产出 Delta（拉取式，消费方不取就不会继续读取连接，天然背压）。
- 迭代自然结束时，把所有片段按到达顺序拼接为一条 assistant 消息写入会话，只执行一次。
- close()（或 with 块退出）在自然结束前调用时视为取消：关闭连接，不写入半截回答。
- 任一终止路径都会释放 ChatClient 的并发锁。

close() 可以从另一个线程调用。若消费方此时正阻塞在 next() 中读取连接，
close() 只记录取消标记，由消费方在本次读取返回后关闭连接并释放并发锁。

状态流转：REQUEST_BUILT -> CONNECTED -> RECEIVING -> COMPLETED | FAILED。
"""

import threading
from enum import Enum
from typing import Callable, Iterator, List, Optional

from deepseek_client.domain.conversation import Conversation
from deepseek_client.domain.models import Delta, Message
from deepseek_client.infrastructure.logging.logger import logger
from deepseek_client.providers.base import HttpRequest, Transport
from deepseek_client.providers.sse import StreamDiagnostics, decode_stream
from deepseek_client.providers.transport import raise_for_status


class StreamState(Enum):
    REQUEST_BUILT = "request_built"
    CONNECTED = "connected"
    RECEIVING = "receiving"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL = (StreamState.COMPLETED, StreamState.FAILED)


class AssistantStream:
    def __init__(
        self,
        transport: Transport,
        request: HttpRequest,
        conversation: Conversation,
        release: Callable[[], None],
        warning: Optional[str] = None,
        keepalive_token: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self._released = True
        self._transport = transport
        self._request = request
        self._conversation = conversation
        self._release_lock = release
        self._keepalive_token = keepalive_token
        self._model = model
        self._events: Optional[Iterator[Delta]] = None
        self._fragments: List[str] = []
        # 保护 state/cancelled/_pulling；读取连接期间不持有
        self._guard = threading.Lock()
        self._pulling = False

        self.state = StreamState.REQUEST_BUILT
        self.warning = warning
        self.cancelled = False
        self.status_code: Optional[int] = None
        self.message: Optional[Message] = None
        self.diagnostics = StreamDiagnostics()
        self._released = False

    def __iter__(self) -> "AssistantStream":
        return self

    def __next__(self) -> Delta:
        with self._guard:
            if self.state in _TERMINAL:
                raise StopIteration
            if self._events is None:
                self._events = self._run()
            self._pulling = True

        try:
            delta = next(self._events)
        except StopIteration:
            with self._guard:
                self._pulling = False
                if self.cancelled:
                    self._teardown()
                else:
                    self._complete()
            raise
        except BaseException:
            with self._guard:
                self._pulling = False
                self._fail()
            raise

        with self._guard:
            self._pulling = False
            if self.cancelled:
                # 读取期间被其他线程取消：丢弃本次增量
                self._teardown()
                raise StopIteration
            self.state = StreamState.RECEIVING
            self._fragments.append(delta.text or "")
        return delta

    def __enter__(self) -> "AssistantStream":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False

    def __del__(self):
        if not getattr(self, "_released", True):
            self.close()

    @property
    def text(self) -> str:
        """目前为止收到的文本。"""

        return "".join(self._fragments)

    def close(self) -> None:
        """取消流：关闭连接并丢弃已收到的片段。已终止时什么也不做。"""

        with self._guard:
            if self.state in _TERMINAL or self.cancelled:
                return
            self.cancelled = True
            if self._pulling:
                logger.info("Stream cancel requested", extra={"extra": {"fragments": len(self._fragments)}})
                return
            self._teardown()

    def _run(self) -> Iterator[Delta]:
        logger.info(
            "Request dispatched",
            extra={"extra": {"provider": "deepseek", "model": self._model, "stream": True}},
        )
        with self._transport.open_stream(self._request) as (status, chunks):
            self.status_code = status
            if status != 200:
                raise_for_status(status, b"".join(chunks))
            self.state = StreamState.CONNECTED
            yield from decode_stream(chunks, self.diagnostics, self._keepalive_token)

    # 以下方法均在持有 _guard 时调用

    def _teardown(self) -> None:
        self.state = StreamState.FAILED
        try:
            if self._events is not None:
                self._events.close()
        finally:
            self._release()
        logger.info(
            "Stream cancelled",
            extra={"extra": {"fragments": len(self._fragments), "dropped": self.diagnostics.dropped}},
        )

    def _complete(self) -> None:
        try:
            self.message = self._conversation.add_assistant_message(self.text)
            self.state = StreamState.COMPLETED
        finally:
            self._release()
        logger.info(
            "Stream completed",
            extra={
                "extra": {
                    "fragments": len(self._fragments),
                    "dropped": self.diagnostics.dropped,
                    "saw_sentinel": self.diagnostics.saw_sentinel,
                }
            },
        )

    def _fail(self) -> None:
        self.state = StreamState.FAILED
        self._release()
        logger.warning("Stream failed", extra={"extra": {"status": self.status_code}})

    def _release(self) -> None:
        if not self._released:
            self._released = True
            self._release_lock()
