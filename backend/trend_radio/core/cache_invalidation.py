"""
缓存失效管理

职责：
- 统一管理电台配置相关的缓存失效
- 提供事件驱动的失效机制（事件名 -> on_<name> 处理器）
- 避免业务代码中散落的 Key 操作

事件类型:

1. radio_settings_changed
   - 失效: radio:mobile:config, radio:settings:*
   - 递增: radio:cfg:version

使用方式:
    from trend_radio.core.cache_invalidation import CacheInvalidator

    invalidator = CacheInvalidator()

    # 按实体
    await invalidator.invalidate_entity_cache("radio")

    # 批量事件
    await invalidator.invalidate([("radio_settings_changed", {})])
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from trend_radio.core.cache import cache
from trend_radio.core.cache_keys import CacheKeys
from trend_radio.core.logging import logger
from trend_radio.utils.time_utils import Datetime

# 实体名 -> 失效事件
ENTITY_EVENTS: dict[str, str] = {
    "radio": "radio_settings_changed",
}


class CacheInvalidator:
    """事件驱动的缓存失效器。"""

    def __init__(self):
        self.version_key = CacheKeys.cfg_version()
        self.updated_at_key = CacheKeys.cfg_updated_at()

    async def invalidate(self, events: Sequence[tuple[str, dict]]) -> None:
        """批量处理失效事件"""
        tasks = []
        for name, payload in events:
            handler = getattr(self, f"on_{name}", None)
            if handler:
                tasks.append(handler(**payload))
            else:
                logger.warning(f"unknown_invalidation_event name={name}")
        if tasks:
            await asyncio.gather(*tasks)

    async def invalidate_entity_cache(self, entity: str) -> None:
        """
        按实体名失效缓存。
        实体登记了事件时走对应处理器，否则按实体前缀清理。
        """
        event = ENTITY_EVENTS.get(entity)
        if event:
            await self.invalidate([(event, {})])
            return
        await cache.clear_prefix(CacheKeys.radio_entity_prefix(entity))
        await self.bump_version()

    # === 事件处理 ===

    async def on_radio_settings_changed(self) -> None:
        """电台配置被管理员更新：清理移动端配置缓存"""
        await self._delete_keys([CacheKeys.radio_mobile_config()])
        await cache.clear_prefix(CacheKeys.radio_entity_prefix("settings"))
        await self.bump_version()

    # === 基础操作 ===

    async def _delete_keys(self, keys: Iterable[str]) -> None:
        ks = [k for k in keys if k]
        if ks:
            await asyncio.gather(*(cache.delete(k) for k in ks))

    # === 版本号管理 ===

    async def bump_version(self) -> int:
        """递增配置版本并记录更新时间，缓存未启用时返回 0"""
        version = await cache.incr(self.version_key)
        if version:
            await cache.set(self.updated_at_key, Datetime.now().isoformat(), ttl=24 * 3600)
        return version
