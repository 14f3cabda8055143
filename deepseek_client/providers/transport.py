"""基于 httpx 的 Transport 实现。

每次调用创建独立的 httpx.Client，网络异常统一包装为 NetworkError。
流式调用在上下文退出时关闭响应与连接，调用方提前放弃时不会再读取后续数据。
"""

from contextlib import contextmanager
from typing import Iterator, Tuple

import httpx

from deepseek_client.config.settings import settings
from deepseek_client.domain.exceptions import NetworkError, RateLimitError, UpstreamRejected
from deepseek_client.infrastructure.logging.logger import logger, redact
from deepseek_client.providers.base import HttpRequest


class HttpxTransport:
    name = "httpx"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def execute(self, request: HttpRequest) -> Tuple[int, bytes]:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(request.url, content=request.body, headers=request.headers)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e)) from e
        return resp.status_code, resp.content

    @contextmanager
    def open_stream(self, request: HttpRequest) -> Iterator[Tuple[int, Iterator[bytes]]]:
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                with client.stream(
                    request.method,
                    request.url,
                    content=request.body,
                    headers=request.headers,
                ) as resp:
                    yield resp.status_code, self._iter_bytes(resp)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e)) from e

    @staticmethod
    def _iter_bytes(resp) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_bytes():
                if chunk:
                    yield chunk
        except (httpx.RequestError, httpx.StreamError) as e:
            # 读流过程中连接中断
            raise NetworkError(code="NETWORK_ERROR", message=str(e)) from e


def raise_for_status(status: int, body: bytes) -> None:
    """非 200 状态码时记录响应体并抛出 UpstreamRejected（429 为 RateLimitError）。"""

    if status == 200:
        return
    text = body.decode("utf-8", errors="replace")
    logger.error(
        "Upstream rejected request",
        extra={"extra": {"status": status, "body": redact(text[:500])}},
    )
    if status == 429:
        # 限流错误交给上层做重试/退避
        raise RateLimitError(body=text)
    raise UpstreamRejected(status=status, body=text)
