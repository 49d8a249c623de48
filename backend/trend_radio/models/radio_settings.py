from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trend_radio.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class RadioSettings(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    电台播放配置。

    每次管理员保存都会插入新行并把旧行置为非激活，历史行保留，
    用作持久化的回退地址来源。
    """
    __tablename__ = "radio_settings"

    stream_url: Mapped[str] = mapped_column(String(500), nullable=False, comment="Primary stream URL")
    metadata_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    station_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Trend Ankara Radio")
    station_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    facebook_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    twitter_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    instagram_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    youtube_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    backup_stream_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Admin-configured fallback stream URL",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    updated_by: Mapped[str | None] = mapped_column(String(128), nullable=True, comment="Admin identifier")

    def __repr__(self) -> str:
        return f"<RadioSettings(stream_url={self.stream_url}, active={self.is_active})>"
