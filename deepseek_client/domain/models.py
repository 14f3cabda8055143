"""统一的对话与结果数据模型。

本模块定义客户端内部共享的标准数据结构：

- Message: 一条对话消息（system/user/assistant）。
- ChatRequest: 一次调用的请求信封（消息快照 + 模型 + 是否流式）。
- ChatResponse: 非流式响应解析后的统一结果。
- Delta: 流式响应中的单条增量片段。
- ChatResult: 交给调用方的最终消息及提示信息。

Codec 负责在这些模型与 DeepSeek 的 JSON 之间做转换，上层只依赖这里的结构。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Tuple, get_args

from deepseek_client.domain.exceptions import ValidationError


# 消息角色，取值固定且穷尽
Role = Literal["system", "user", "assistant"]
ROLES: Tuple[str, ...] = get_args(Role)

# 逻辑模型名（再由 registry 映射为真实模型 ID）
ModelName = Literal["primary", "reasoner"]


@dataclass(frozen=True)
class Message:
    """一条对话消息，既可用于请求，也可用于响应。

    - content: 纯文本内容。
    - role: 消息角色。
    - name: 可选的发送者名称，仅在设置时随请求发出。
    """

    content: str
    role: Role
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValidationError(code="UNKNOWN_ROLE", message=f"Unknown role: {self.role!r}")


@dataclass(frozen=True)
class ChatRequest:
    """一次完整的聊天请求，每次调用都从当前会话重新构造。"""

    messages: Tuple[Message, ...]
    model: ModelName
    stream: bool = False


@dataclass
class ChatUsage:
    """接口返回的 token 统计信息。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    """单个候选回答（客户端只使用第一条）。"""

    index: int
    message: Message
    finish_reason: Optional[str] = None


@dataclass
class ChatResponse:
    """一次非流式调用解析后的结果。"""

    id: str
    created: datetime
    model: str
    choices: list[ChatChoice] = field(default_factory=list)
    usage: Optional[ChatUsage] = None


@dataclass(frozen=True)
class Delta:
    """流式回答中的一段增量。"""

    role: Optional[Role] = None
    text: Optional[str] = None


@dataclass(frozen=True)
class ChatResult:
    """返回给调用方的结果：最终消息 + 可选的提示信息。"""

    message: Message
    warning: Optional[str] = None
