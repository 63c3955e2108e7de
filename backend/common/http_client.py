#!/usr/bin/env python
# -*- coding: utf-8 -*-
# @File      : http_client.py
# @Created   : 2025/12/03 10:02

import httpx

from typing import Optional, Dict
from httpx import Response

from backend.common.log import log


class HTTPClient:
    def __init__(
            self, base_url: str = "",
            timeout: Optional[float] = 15.0,
            read: Optional[float] = 15.0,
            write: Optional[float] = 15.0,
            headers: Optional[Dict[str, str]] = None,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.read = read
        self.write = write
        self.headers = headers or {}
        self.transport = transport

        self._http_client = self._create_http_client()

    def _create_http_client(self) -> httpx.AsyncClient:
        """固件源站 HTTP 客户端：
        - 连接池复用
        - 连接失败重试（非幂等请求由调用方控制超时）
        - 可注入 transport（测试使用 MockTransport）
        """
        limits = httpx.Limits(
            max_keepalive_connections=20,
            max_connections=50,
            keepalive_expiry=60.0
        )

        transport = self.transport or httpx.AsyncHTTPTransport(
            retries=2,
            http2=True,
            limits=limits,
        )

        return httpx.AsyncClient(
            base_url=self.base_url,
            http2=True,
            timeout=httpx.Timeout(
                timeout=self.timeout,  # 全局超时兜底
                read=self.read,  # 读取超时
                write=self.write,  # 发送超时
                pool=5.0  # 连接池超时
            ),
            limits=limits,
            transport=transport,
            headers={"User-Agent": "calcfleet/1.0", **self.headers},
            max_redirects=5,
            follow_redirects=True,
        )

    async def request(self, method: str, url: str, **kwargs) -> Response:
        """封装请求方法，非 2xx 响应抛出 HTTPStatusError"""
        try:
            response = await self._http_client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.RequestError as e:
            log.error(f"Request error: {method} {url} {e!r}")
            raise
        except httpx.HTTPStatusError as e:
            log.warning(f"HTTP error: {method} {url} -> {e.response.status_code}")
            raise

    async def get(self, url: str, params: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        """封装 GET 请求"""
        return await self.request("GET", url, params=params, **kwargs)

    async def head(self, url: str, **kwargs) -> httpx.Response:
        """封装 HEAD 请求"""
        return await self.request("HEAD", url, **kwargs)

    async def close(self):
        """关闭客户端连接"""
        await self._http_client.aclose()
