from __future__ import annotations

from typing import Any

import httpx


def create_async_http_client(
    *,
    timeout: float | httpx.Timeout | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    headers: dict[str, str] | None = None,
    follow_redirects: bool = True,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """
    创建探测用的 httpx.AsyncClient。

    - transport 允许测试注入 httpx.MockTransport。
    - 电台流服务器普遍只支持 HTTP/1.1，这里不开启 http2。
    - 默认跟随重定向（Icecast 负载均衡常见 302）。
    """
    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        headers=headers,
        follow_redirects=follow_redirects,
        **client_kwargs,
    )
