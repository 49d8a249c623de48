from datetime import UTC, datetime


class Datetime:
    """
    统一的时间处理工具类
    核心原则：
    1. 系统内部（数据库、逻辑处理）统一使用 UTC 时区
    2. 所有 datetime 对象必须带有时区信息 (Timezone-aware)
    """

    @staticmethod
    def now() -> datetime:
        """获取当前 UTC 时间（带时区信息）"""
        return datetime.now(UTC)

    @staticmethod
    def ensure_aware(dt: datetime) -> datetime:
        """naive datetime 视为 UTC（SQLite 读回的时间没有时区）"""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """转换为 ISO 8601 格式字符串 (e.g., 2023-01-01T12:00:00+00:00)"""
        return Datetime.ensure_aware(dt).isoformat()

    @staticmethod
    def now_ms() -> int:
        """当前 UTC 毫秒时间戳，事件载荷使用"""
        return int(datetime.now(UTC).timestamp() * 1000)

    @staticmethod
    def seconds_since(dt: datetime) -> float:
        """距 dt 已经过去的秒数"""
        return (Datetime.now() - Datetime.ensure_aware(dt)).total_seconds()
