"""BrainwritingSheet model — one grid, with its edit lock and turn counter."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from idealab.database import Base, utcnow


class BrainwritingSheet(Base):
    __tablename__ = "brainwriting_sheets"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    brainwriting_id: Mapped[int] = mapped_column(
        ForeignKey("brainwritings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ── Lock ──
    current_user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    lock_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Completed turns; team sheets only.
    turn_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ── Timestamps ──
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
