"""
Screen configuration models.

One row per screen, plus the join table linking screens to events.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from screenconf.domain.models.base import Base, TimestampMixin, utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Screen(Base, TimestampMixin):
    """Configuration row of a photobooth screen."""

    __tablename__ = "screens"
    __table_args__ = {"comment": "Per-screen capture/appearance/advanced configuration"}

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True, comment="vertical, horizontal"
    )
    orientation: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True, comment="portrait, landscape"
    )
    ratio: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    screen_key: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, index=True
    )
    config: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)

    # Legacy flat columns
    flash_enabled: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    mirror_preview: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    countdown_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    frame_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EventScreen(Base):
    """Association of a screen with an event."""

    __tablename__ = "event_screens"
    __table_args__ = {"comment": "Screens participating in an event"}

    event_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    screen_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=utc_now
    )
