import pickle
import random
from typing import Any

from redis.asyncio import Redis, from_url

from trend_radio.core.config import settings
from trend_radio.core.logging import logger


class CacheService:
    """
    Redis 缓存服务

    未配置 REDIS_URL 时所有操作降级为 no-op，读返回 None。
    """
    def __init__(self):
        self._redis: Redis | None = None

    def init(self) -> None:
        """初始化 Redis 连接池"""
        if settings.REDIS_URL:
            self._redis = from_url(
                settings.REDIS_URL,
                encoding=settings.REDIS_ENCODING,
                decode_responses=False  # 手动处理序列化，支持对象缓存
            )
            logger.info(f"Redis initialized at {settings.REDIS_URL}")
        else:
            logger.warning("REDIS_URL not set, cache will be disabled")

    async def close(self) -> None:
        """关闭 Redis 连接"""
        if self._redis:
            await self._redis.close()
            logger.info("Redis connection closed")

    def _make_key(self, key: str) -> str:
        return f"{settings.CACHE_PREFIX}{key}"

    async def get(self, key: str) -> Any | None:
        """获取缓存值 (自动反序列化)"""
        if not self._redis: return None
        try:
            data = await self._redis.get(self._make_key(key))
            if data:
                return pickle.loads(data)
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = settings.CACHE_DEFAULT_TTL,
        ex: int | None = None,
        nx: bool | None = None,
    ) -> bool:
        """设置缓存值 (自动序列化)"""
        if not self._redis: return False
        try:
            data = pickle.dumps(value)
            expire = ex if ex is not None else ttl
            kwargs = {"ex": expire}
            if nx is not None:
                kwargs["nx"] = nx
            return bool(await self._redis.set(self._make_key(key), data, **kwargs))
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """删除缓存"""
        if not self._redis: return False
        try:
            await self._redis.delete(self._make_key(key))
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    async def incr(self, key: str, amount: int = 1) -> int:
        """原子自增计数，未初始化时返回 0"""
        if not self._redis: return 0
        try:
            return int(await self._redis.incr(self._make_key(key), amount))
        except Exception as e:
            logger.error(f"Cache incr error for key {key}: {e}")
            return 0

    async def clear_prefix(self, prefix: str) -> int:
        """根据前缀清除缓存，返回删除的 Key 数量"""
        if not self._redis: return 0
        try:
            # prefix 不含 CACHE_PREFIX，keys 搜索需要完整 pattern
            pattern = f"{settings.CACHE_PREFIX}{prefix}*"
            keys = await self._redis.keys(pattern)
            if keys:
                return await self._redis.delete(*keys)
            return 0
        except Exception as e:
            logger.error(f"Cache clear_prefix error for {prefix}: {e}")
            return 0

    @staticmethod
    def jitter_ttl(ttl: int, jitter_ratio: float = 0.1) -> int:
        """为 TTL 添加抖动，避免同一时刻集中过期"""
        if ttl <= 0:
            return ttl
        delta = int(ttl * jitter_ratio)
        return ttl + random.randint(-delta, delta)


# 全局实例
cache = CacheService()
