from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trend_radio.models.radio_settings import RadioSettings
from trend_radio.utils.time_utils import Datetime


class RadioSettingsRepository:
    """radio_settings 表的读写；同一时刻最多一行 is_active"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _recently_updated_first(self):
        return (RadioSettings.updated_at.desc(), RadioSettings.created_at.desc())

    async def get_active(self) -> RadioSettings | None:
        """最近更新的激活配置；没有激活行时退回最近更新的任意一行"""
        result = await self.session.execute(
            select(RadioSettings)
            .where(RadioSettings.is_active.is_(True))
            .order_by(*self._recently_updated_first())
            .limit(1)
        )
        active = result.scalars().first()
        if active:
            return active

        result = await self.session.execute(
            select(RadioSettings).order_by(*self._recently_updated_first()).limit(1)
        )
        return result.scalars().first()

    async def get_persisted_fallback_url(self) -> str | None:
        """
        管理员持久化的回退地址：
        1. 最新的非空 backup_stream_url
        2. 最近一条历史（非激活）配置的 stream_url
        """
        result = await self.session.execute(
            select(RadioSettings.backup_stream_url)
            .where(
                RadioSettings.backup_stream_url.is_not(None),
                RadioSettings.backup_stream_url != "",
            )
            .order_by(RadioSettings.created_at.desc())
            .limit(1)
        )
        backup = result.scalars().first()
        if backup:
            return backup

        result = await self.session.execute(
            select(RadioSettings.stream_url)
            .where(RadioSettings.is_active.is_(False), RadioSettings.stream_url != "")
            .order_by(RadioSettings.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def list_history(self, limit: int = 20) -> list[RadioSettings]:
        result = await self.session.execute(
            select(RadioSettings).order_by(RadioSettings.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def replace_active(self, data: dict[str, Any], updated_by: str | None) -> RadioSettings:
        """
        原子替换激活配置：同一事务内停用所有激活行并插入新的激活行。
        任一步失败整体回滚。
        """
        now = Datetime.now()
        row = RadioSettings(
            **data,
            is_active=True,
            updated_by=updated_by,
            created_at=now,
            updated_at=now,
        )
        try:
            await self.session.execute(
                update(RadioSettings)
                .where(RadioSettings.is_active.is_(True))
                .values(is_active=False, updated_by=updated_by)
            )
            self.session.add(row)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(row)
        return row
