"""Grid cell writes using the database's native upsert."""

from datetime import datetime
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.core.exceptions import StoreUnavailable
from idealab.models import BrainwritingInput

CELL_KEY = ["brainwriting_sheet_id", "row_index", "column_index"]
MAX_CONTENT_LENGTH = 100


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StoreUnavailable(f"Unsupported database dialect: {dialect}")


def normalize_content(content: Optional[str]) -> Optional[str]:
    """Blank input is stored as NULL."""
    if content is None:
        return None
    content = content.strip()
    return content or None


async def upsert_cell(
    db: AsyncSession,
    *,
    brainwriting_id: int,
    sheet_id: int,
    user_id: int,
    row_index: int,
    column_index: int,
    content: Optional[str],
    now: datetime,
) -> None:
    """Write one cell; the last write to a (sheet, row, column) wins."""
    insert = _insert_for(db)
    stmt = insert(BrainwritingInput).values(
        brainwriting_id=brainwriting_id,
        brainwriting_sheet_id=sheet_id,
        user_id=user_id,
        row_index=row_index,
        column_index=column_index,
        content=normalize_content(content),
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=CELL_KEY,
        set_={
            "content": stmt.excluded.content,
            "user_id": stmt.excluded.user_id,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await db.execute(stmt)


async def insert_empty_row(
    db: AsyncSession,
    *,
    brainwriting_id: int,
    sheet_id: int,
    user_id: int,
    row_index: int,
    columns: int,
    now: datetime,
) -> None:
    """Create the placeholder cells of a row. Existing cells are left alone."""
    insert = _insert_for(db)
    stmt = insert(BrainwritingInput).values([
        {
            "brainwriting_id": brainwriting_id,
            "brainwriting_sheet_id": sheet_id,
            "user_id": user_id,
            "row_index": row_index,
            "column_index": column,
            "content": None,
            "created_at": now,
            "updated_at": now,
        }
        for column in range(columns)
    ])
    await db.execute(stmt.on_conflict_do_nothing(index_elements=CELL_KEY))
