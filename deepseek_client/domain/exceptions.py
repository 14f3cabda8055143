"""统一业务异常模型。

所有跨模块抛出的错误都继承自 BusinessError，
便于 UI 层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NO_CHOICES"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 status、body 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class OrderingViolation(BusinessError):
    """system 消息必须是会话中的第一条消息。"""

    def __init__(self, message: str = "System message must be the first message"):
        super().__init__(code="SYSTEM_MESSAGE_NOT_FIRST", message=message)


class EncodingFailure(BusinessError):
    """请求体无法序列化。"""

    def __init__(self, message: str):
        super().__init__(code="ENCODING_FAILED", message=message)


class DecodingFailure(BusinessError):
    """响应 JSON 格式错误或结构不符。"""

    def __init__(self, message: str):
        super().__init__(code="DECODING_FAILED", message=message, http_status=502)


class NoChoicesPresent(BusinessError):
    """接口返回成功，但 choices 为空。"""

    def __init__(self, message: str = "No message received from assistant"):
        super().__init__(code="NO_CHOICES", message=message, http_status=502)


class UpstreamRejected(BusinessError):
    """接口返回非 200 状态码。"""

    def __init__(self, status: int, body: str = "", code: str = "UPSTREAM_REJECTED"):
        self.status = status
        self.body = body
        super().__init__(
            code=code,
            message=f"Upstream rejected request with status {status}",
            http_status=status,
            status=status,
        )


class RateLimitError(UpstreamRejected):
    """限流错误（429），重试/退避由上层负责。"""

    def __init__(self, body: str = ""):
        super().__init__(status=429, body=body, code="RATE_LIMIT")


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时、读流中断等。"""


class ConcurrentSendRejected(BusinessError):
    """同一会话上已有一个进行中的请求。"""

    def __init__(self, message: str = "Another send is already in flight for this conversation"):
        super().__init__(code="CONCURRENT_SEND", message=message, http_status=409)
