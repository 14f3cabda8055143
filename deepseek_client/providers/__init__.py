"""DeepSeek 接入层。

该包下的模块负责：
- 定义 Transport 抽象接口 (base) 及 httpx 实现 (transport)。
- 维护模型配置 (registry)。
- 请求/响应编解码 (codec) 与流式响应解码 (sse)。
- 组合以上能力的对话客户端 (chat_client、streaming)。
"""

from typing import Optional

from deepseek_client.config.settings import settings
from deepseek_client.domain.conversation import Conversation
from deepseek_client.providers.base import Transport
from deepseek_client.providers.chat_client import ChatClient
from deepseek_client.providers.streaming import AssistantStream, StreamState


def create_client(
    conversation: Optional[Conversation] = None,
    transport: Optional[Transport] = None,
) -> ChatClient:
    """按全局配置创建 ChatClient，可注入会话与 Transport。"""

    return ChatClient(settings, transport=transport, conversation=conversation)


__all__ = ["AssistantStream", "ChatClient", "StreamState", "create_client"]
