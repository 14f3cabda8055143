"""会话状态：有序的消息历史。

约束：若存在 system 消息，它必须位于下标 0，且最多只能有一条。
会话只由持有它的 ChatClient 修改，写入口只有三个 add_* 方法。
"""

from typing import Iterator, List, Optional, Tuple

from deepseek_client.domain.exceptions import OrderingViolation
from deepseek_client.domain.models import Message


class Conversation:
    def __init__(self) -> None:
        self._messages: List[Message] = []

    def add_system_message(self, text: str) -> Message:
        """追加 system 消息；会话非空时抛出 OrderingViolation。"""

        if self._messages:
            raise OrderingViolation()
        message = Message(content=text, role="system")
        self._messages.append(message)
        return message

    def add_user_message(self, text: str, name: Optional[str] = None) -> Tuple[Message, bool]:
        """追加 user 消息。

        Returns:
            (消息, 是否缺少 system 消息)。第二项仅在这是会话第一条消息时为 True，
            是给调用方的提示，不是错误。
        """

        message = Message(content=text, role="user", name=name)
        self._messages.append(message)
        return message, len(self._messages) == 1

    def add_assistant_message(self, text: str) -> Message:
        message = Message(content=text, role="assistant")
        self._messages.append(message)
        return message

    def snapshot(self) -> Tuple[Message, ...]:
        """返回不可变的消息副本，用于构造请求。"""

        return tuple(self._messages)

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.snapshot()

    @property
    def has_system_message(self) -> bool:
        return bool(self._messages) and self._messages[0].role == "system"

    def clear(self) -> None:
        """清空历史，开始新的对话。"""

        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
