"""Brainwriting model — a collaborative idea grid session."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from idealab.database import Base, utcnow


class UsageScope(str, enum.Enum):
    """How sheets circulate: one shared sheet via a public link, or rotation within a team."""
    XPOST = "xpost"
    TEAM = "team"


class Brainwriting(Base):
    __tablename__ = "brainwritings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    usage_scope: Mapped[UsageScope] = mapped_column(
        Enum(UsageScope, values_callable=lambda e: [m.value for m in e], native_enum=False, length=10),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    theme_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000))

    # ── Sharing ──
    invite_token: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    is_invite_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_results_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Timestamps ──
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
