"""
Sheet edit locks.

A sheet is locked when it has a holder and a lock expiry in the future.
Acquisition is a single conditional UPDATE, so two concurrent requests can
never both be granted the same sheet. Expired locks are never swept in the
background; every read path that cares calls ``clear_expired`` first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.core.exceptions import SheetNotFound
from idealab.database import utcnow
from idealab.models import BrainwritingSheet

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class LockResult:
    granted: bool
    sheet_id: int
    held_by: Optional[int] = None
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReclaimedLock:
    """A lock cleared because it expired, with the user who held it."""
    sheet_id: int
    user_id: int


# ── Pure predicates ──

def is_lock_active(sheet: BrainwritingSheet, now: datetime) -> bool:
    return (
        sheet.current_user_id is not None
        and sheet.lock_expires_at is not None
        and sheet.lock_expires_at > now
    )


def holds(sheet: BrainwritingSheet, user_id: int, now: datetime) -> bool:
    return is_lock_active(sheet, now) and sheet.current_user_id == user_id


def is_locked_by_other(sheet: BrainwritingSheet, user_id: int, now: datetime) -> bool:
    return is_lock_active(sheet, now) and sheet.current_user_id != user_id


def _lapsed(now: datetime):
    return or_(
        BrainwritingSheet.lock_expires_at.is_(None),
        BrainwritingSheet.lock_expires_at <= now,
    )


class LockManager:
    """Grants, releases and expires sheet locks inside the caller's transaction."""

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    async def get_sheet(self, db: AsyncSession, sheet_id: int) -> Optional[BrainwritingSheet]:
        result = await db.execute(
            select(BrainwritingSheet)
            .where(BrainwritingSheet.id == sheet_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def try_acquire(
        self, db: AsyncSession, sheet_id: int, user_id: int, ttl: timedelta
    ) -> LockResult:
        """
        Take the lock if the sheet is free, expired, or already ours.

        Re-acquiring a lock we hold refreshes its expiry. A refusal is a normal
        result, not an error; the caller decides what to report.
        """
        now = self.now()
        expires_at = now + ttl
        result = await db.execute(
            update(BrainwritingSheet)
            .where(
                BrainwritingSheet.id == sheet_id,
                or_(
                    BrainwritingSheet.current_user_id.is_(None),
                    BrainwritingSheet.current_user_id == user_id,
                    _lapsed(now),
                ),
            )
            .values(current_user_id=user_id, lock_expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            logger.debug("Lock on sheet %s granted to user %s until %s", sheet_id, user_id, expires_at)
            return LockResult(granted=True, sheet_id=sheet_id, held_by=user_id, expires_at=expires_at)

        sheet = await self.get_sheet(db, sheet_id)
        if sheet is None:
            raise SheetNotFound(sheet_id)
        logger.debug("Lock on sheet %s refused for user %s (held by %s)", sheet_id, user_id, sheet.current_user_id)
        return LockResult(
            granted=False,
            sheet_id=sheet_id,
            held_by=sheet.current_user_id,
            expires_at=sheet.lock_expires_at,
        )

    async def release(self, db: AsyncSession, sheet_id: int, user_id: int) -> bool:
        """Clear the lock if ``user_id`` holds it. Returns whether anything changed."""
        result = await db.execute(
            update(BrainwritingSheet)
            .where(
                BrainwritingSheet.id == sheet_id,
                BrainwritingSheet.current_user_id == user_id,
            )
            .values(current_user_id=None, lock_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def clear_expired(self, db: AsyncSession, brainwriting_id: int) -> List[ReclaimedLock]:
        now = self.now()
        result = await db.execute(
            select(BrainwritingSheet.id, BrainwritingSheet.current_user_id).where(
                BrainwritingSheet.brainwriting_id == brainwriting_id,
                BrainwritingSheet.current_user_id.is_not(None),
                _lapsed(now),
            )
        )
        reclaimed: List[ReclaimedLock] = []
        for sheet_id, holder_id in result.all():
            # Conditional on the same holder so a concurrent re-acquire wins.
            cleared = await db.execute(
                update(BrainwritingSheet)
                .where(
                    and_(
                        BrainwritingSheet.id == sheet_id,
                        BrainwritingSheet.current_user_id == holder_id,
                        _lapsed(now),
                    )
                )
                .values(current_user_id=None, lock_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            if cleared.rowcount == 1:
                reclaimed.append(ReclaimedLock(sheet_id=sheet_id, user_id=holder_id))

        if reclaimed:
            logger.info("Cleared %d expired lock(s) on brainwriting %s", len(reclaimed), brainwriting_id)
        return reclaimed
