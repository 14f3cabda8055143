"""DeepSeek 对话客户端顶层包。

提供带约束的会话历史、请求编解码、流式响应解码，
以及把它们组合起来的 ChatClient。
"""

from deepseek_client.domain.conversation import Conversation
from deepseek_client.domain.models import ChatResult, Delta, Message
from deepseek_client.providers import AssistantStream, ChatClient, StreamState, create_client

__all__ = [
    "AssistantStream",
    "ChatClient",
    "ChatResult",
    "Conversation",
    "Delta",
    "Message",
    "StreamState",
    "create_client",
]
