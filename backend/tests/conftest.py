"""
测试全局配置

- 默认禁用真实 Redis，统一使用内存 DummyRedis
- 使用内存 SQLite (aiosqlite) 运行真实的仓储与服务逻辑
- 健康监控在测试中不随应用启动，需要时由用例自行构造
"""
from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Iterable
from typing import Any

# 必须在导入 trend_radio 之前设置，Settings 在导入时读取环境
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("HEALTH_MONITOR_ENABLED", "false")
os.environ.setdefault("LOG_ASYNC", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trend_radio.core.cache import cache
from trend_radio.core.config import settings
from trend_radio.models import Base
from trend_radio.services.radio.events import RadioEventBus
from trend_radio.services.radio.fallback import (
    FallbackManager,
    FallbackSourceAggregator,
    FallbackSourceConfig,
)
from trend_radio.services.radio.stream_prober import ProbeFailure, StreamTestResult

settings.REDIS_URL = ""
settings.ADMIN_API_KEY = None


class DummyRedis:
    """轻量内存 Redis 替身，只覆盖 CacheService / CacheInvalidator 用到的方法"""

    def __init__(self):
        self.store: dict[str, Any] = {}

    async def get(self, key: str):
        return self.store.get(key)

    async def set(self, key: str, value, ex=None, nx: bool | None = None):
        if nx and key in self.store:
            return False
        self.store[key] = value
        return True

    async def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def unlink(self, *keys):
        return await self.delete(*keys)

    async def keys(self, pattern: str):
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            return [k for k in self.store if k.startswith(prefix)]
        return [k for k in self.store if k == pattern]

    async def incr(self, key: str, amount: int = 1):
        value = int(self.store.get(key, 0)) + amount
        self.store[key] = value
        return value

    async def flushall(self):
        self.store.clear()

    async def close(self):
        return None


class FakeProber:
    """
    按 URL 集合决定探测结果的 StreamProber 替身。

    - `working` 中的 URL 返回有效的 audio/mpeg 结果
    - 其余 URL 返回 503
    - `raising` 中的 URL 直接抛异常
    """

    def __init__(
        self,
        working: Iterable[str] = (),
        *,
        raising: Iterable[str] = (),
        response_time_ms: int = 120,
    ):
        self.working = set(working)
        self.raising = set(raising)
        self.response_time_ms = response_time_ms
        self.calls: list[str] = []

    async def probe(self, url: str, timeout: float | None = None) -> StreamTestResult:
        self.calls.append(url)
        if url in self.raising:
            raise RuntimeError(f"stream check exploded for {url}")
        if url in self.working:
            return StreamTestResult(
                is_valid=True,
                status_code=200,
                response_time_ms=self.response_time_ms,
                content_type="audio/mpeg",
            )
        return StreamTestResult(
            is_valid=False,
            status_code=503,
            response_time_ms=self.response_time_ms,
            content_type="text/html",
            error="Stream URL returned status 503: Service Unavailable",
            failure=ProbeFailure.HTTP_STATUS,
        )


@pytest.fixture
def fake_prober_cls() -> type[FakeProber]:
    return FakeProber


@pytest.fixture
def make_fallback_manager():
    """构造使用固定来源配置的 FallbackManager"""

    def _make(
        prober: FakeProber,
        *,
        primary: str | None = None,
        backup: str | None = None,
        extras: tuple[str, ...] = (),
        defaults: tuple[str, ...] = (),
        persisted: str | None = None,
        options=None,
    ) -> FallbackManager:
        async def load_persisted() -> str | None:
            return persisted

        aggregator = FallbackSourceAggregator(
            FallbackSourceConfig(
                primary_url=primary,
                backup_url=backup,
                extra_urls=extras,
                default_urls=defaults,
            ),
            persisted_fallback_loader=load_persisted,
        )
        return FallbackManager(aggregator, prober, options)

    return _make


@pytest.fixture
def event_bus() -> RadioEventBus:
    return RadioEventBus()


@pytest.fixture
def recorded_events(event_bus: RadioEventBus) -> list[tuple[str, Any]]:
    events: list[tuple[str, Any]] = []
    event_bus.subscribe(lambda name, payload: events.append((name.value, payload)))
    return events


@pytest.fixture(autouse=True)
def dummy_redis():
    """每个测试使用独立的内存 Redis，避免状态串扰"""
    redis = DummyRedis()
    cache._redis = redis  # type: ignore[assignment]
    yield redis
    cache._redis = None


# ---- 内存 SQLite ----


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
