"""Redis缓存实现"""
from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Optional

from redis import asyncio as aioredis

from core.config import settings


def _json_dumps(value: Any) -> str:
    """将任意对象序列化为JSON字符串"""
    return json.dumps(value, default=str)


def _json_loads(value: Optional[str]) -> Any:
    """将JSON字符串反序列化为对象"""
    if value is None:
        return None
    return json.loads(value)


class RedisCache:
    """基于Redis的简单缓存实现（JSON 值 + 命名空间前缀）"""

    def __init__(self, client: aioredis.Redis, namespace: str = "", default_ttl: Optional[int] = None) -> None:
        self._client = client
        self._namespace = namespace.strip(":")
        self._default_ttl = settings.redis.default_ttl if default_ttl is None else default_ttl

    def _format_key(self, key: str) -> str:
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    def _strip_key(self, formatted: str) -> str:
        if self._namespace and formatted.startswith(f"{self._namespace}:"):
            return formatted[len(self._namespace) + 1:]
        return formatted

    def _expire(self, ttl: Optional[int]) -> Optional[int]:
        expire = self._default_ttl if ttl is None else ttl
        return expire if expire and expire > 0 else None

    async def get(self, key: str) -> Any:
        value = await self._client.get(self._format_key(key))
        if value is None:
            return None
        return _json_loads(value)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self._client.set(self._format_key(key), _json_dumps(value), ex=self._expire(ttl))

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """SET NX：键不存在时写入，返回是否写入成功"""
        result = await self._client.set(
            self._format_key(key), _json_dumps(value), ex=self._expire(ttl), nx=True
        )
        return bool(result)

    async def delete(self, key: str) -> bool:
        return bool(await self._client.delete(self._format_key(key)))

    async def exists(self, key: str) -> bool:
        return bool(await self._client.exists(self._format_key(key)))

    async def iter_keys(self, pattern: str = "*") -> AsyncIterator[str]:
        """按模式遍历键（SCAN，不阻塞 Redis），返回去掉命名空间的键名"""
        async for formatted in self._client.scan_iter(match=self._format_key(pattern)):
            yield self._strip_key(formatted)

    async def ping(self) -> bool:
        return bool(await self._client.ping())


_redis_client: Optional[aioredis.Redis] = None
_cache_instance: Optional[RedisCache] = None
_lock = asyncio.Lock()


async def init_redis_cache(namespace: Optional[str] = None) -> RedisCache:
    """初始化Redis缓存实例"""
    global _redis_client, _cache_instance

    if _cache_instance is not None:
        return _cache_instance

    async with _lock:
        if _cache_instance is not None:
            return _cache_instance

        if not settings.redis.url:
            raise RuntimeError("REDIS__URL 未配置，无法初始化Redis缓存")

        client = aioredis.from_url(
            settings.redis.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.redis.max_connections,
        )

        _redis_client = client
        _cache_instance = RedisCache(
            client=client,
            namespace=namespace or settings.redis.namespace,
        )
        return _cache_instance


async def shutdown_redis_cache() -> None:
    """关闭Redis连接"""
    global _redis_client, _cache_instance

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        _cache_instance = None
