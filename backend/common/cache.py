# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : cache.py
@Date    : 2025/12/03 09:30
"""
import secrets
import threading

from typing import Hashable, Optional

from cachetools import LRUCache, TTLCache


class DigestCache:
    """
    固件摘要缓存（LRU）

    缓存键包含版本、大小与修改时间，重新上传后不会命中旧摘要
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self._cache: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[str]:
        with self._lock:
            return self._cache.get(key)

    def put(self, key: Hashable, digest: str) -> None:
        with self._lock:
            self._cache[key] = digest

    def discard_version(self, version: str) -> None:
        """ 丢弃该版本的全部摘要 """
        with self._lock:
            for key in [k for k in self._cache if isinstance(k, tuple) and k and k[0] == version]:
                self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


class SessionTokenCache:
    """
    绑定设备的短期浏览器令牌（TTL）

    :param ttl: 令牌有效期（秒）
    :param maxsize: 令牌数量上限
    """

    def __init__(self, ttl: float, maxsize: int = 10_000) -> None:
        self._tokens: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def issue(self, mac: str) -> str:
        token = secrets.token_urlsafe(24)
        with self._lock:
            self._tokens[token] = mac
        return token

    def resolve(self, token: str) -> Optional[str]:
        """ 令牌对应的设备，未知或已过期返回 None """
        if not token:
            return None
        with self._lock:
            return self._tokens.get(token)

    def revoke_device(self, mac: str) -> int:
        """
        吊销设备的全部令牌

        :param mac: 设备 MAC
        :return: 吊销的令牌数
        """
        with self._lock:
            stale = [token for token, bound in self._tokens.items() if bound == mac]
            for token in stale:
                self._tokens.pop(token, None)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
