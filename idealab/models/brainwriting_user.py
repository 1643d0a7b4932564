"""BrainwritingUser model — a participant of a brainwriting, ordered by join."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from idealab.database import Base, utcnow


class BrainwritingUser(Base):
    __tablename__ = "brainwriting_users"
    __table_args__ = (
        UniqueConstraint("brainwriting_id", "user_id", name="uq_brainwriting_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    brainwriting_id: Mapped[int] = mapped_column(
        ForeignKey("brainwritings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
