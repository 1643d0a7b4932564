"""BrainwritingInput model — one idea cell on a sheet."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from idealab.database import Base, utcnow


class BrainwritingInput(Base):
    __tablename__ = "brainwriting_inputs"
    __table_args__ = (
        UniqueConstraint("brainwriting_sheet_id", "row_index", "column_index", name="uq_brainwriting_input_cell"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    brainwriting_id: Mapped[int] = mapped_column(
        ForeignKey("brainwritings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    brainwriting_sheet_id: Mapped[int] = mapped_column(
        ForeignKey("brainwriting_sheets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    row_index: Mapped[int] = mapped_column(Integer, nullable=False)
    column_index: Mapped[int] = mapped_column(Integer, nullable=False)
    # NULL for a blank cell
    content: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
