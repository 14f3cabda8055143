"""Transport 抽象接口。

ChatClient 不直接依赖具体的 HTTP 库，而是依赖此协议：

- execute(request): 一次非流式 HTTP 交换，返回 (状态码, 响应体)。
- open_stream(request): 打开一次流式 HTTP 交换，作为上下文管理器产出
  (状态码, 原始字节块迭代器)；退出上下文即关闭连接。

这样测试可以直接注入假的 Transport，也便于替换底层实现。
"""

from dataclasses import dataclass, field
from typing import ContextManager, Dict, Iterator, Protocol, Tuple


@dataclass(frozen=True)
class HttpRequest:
    """一次待发送的 HTTP 请求，构造后不再修改。"""

    url: str
    body: bytes
    method: str = "POST"
    headers: Dict[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """HTTP 传输层协议。"""

    name: str

    def execute(self, request: HttpRequest) -> Tuple[int, bytes]:
        ...

    def open_stream(self, request: HttpRequest) -> ContextManager[Tuple[int, Iterator[bytes]]]:
        ...
