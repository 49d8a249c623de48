"""缓存 Key 注册表实现。

禁止在业务代码中硬编码 Redis Key，统一从此处生成，便于失效管理。
"""

from __future__ import annotations


class CacheKeys:
    prefix = "radio"

    # ===== Radio settings =====
    @classmethod
    def radio_mobile_config(cls) -> str:
        """移动端拉取的播放配置（含 ETag 载荷）。"""
        return f"{cls.prefix}:mobile:config"

    @classmethod
    def radio_entity_prefix(cls, entity: str) -> str:
        return f"{cls.prefix}:{entity}:"

    # ===== Global config version =====
    @classmethod
    def cfg_version(cls) -> str:
        return f"{cls.prefix}:cfg:version"

    @classmethod
    def cfg_updated_at(cls) -> str:
        return f"{cls.prefix}:cfg:updated_at"
