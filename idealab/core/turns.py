"""
Turn order and sheet completion.

Team sheets circulate: sheet ``n`` starts with the participant who joined
``n``-th and then passes down the join order, wrapping around. A user's row on
a team sheet is their position in that sheet's rotation, so the row being
written always equals the sheet's ``turn_index``. Broadcast sessions have a
single sheet and no rotation; each participant writes the row matching their
join position.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.config import BrainwritingRules
from idealab.core.cells import insert_empty_row
from idealab.core.exceptions import SheetLocked, WrongTurn
from idealab.core.locks import LockManager
from idealab.models import BrainwritingInput, BrainwritingSheet

logger = logging.getLogger(__name__)


# ── Ordering ──

def rotation_order(participant_ids: Sequence[int], sequence: int) -> List[int]:
    if not participant_ids:
        return []
    start = sequence % len(participant_ids)
    return list(participant_ids[start:]) + list(participant_ids[:start])


def current_turn_user(order: Sequence[int], turn_index: int) -> Optional[int]:
    """Whose turn it is, or None once every participant has had one."""
    if 0 <= turn_index < len(order):
        return order[turn_index]
    return None


def row_for(order: Sequence[int], user_id: int) -> Optional[int]:
    try:
        return list(order).index(user_id)
    except ValueError:
        return None


def broadcast_row_for(participant_ids: Sequence[int], user_id: int) -> Optional[int]:
    return row_for(participant_ids, user_id)


# ── Completion ──

def filled_rows(inputs: Iterable[BrainwritingInput]) -> Set[int]:
    return {i.row_index for i in inputs if i.content}


def is_team_sheet_complete(turn_index: int, participant_count: int) -> bool:
    return participant_count > 0 and turn_index >= participant_count


def rows_cover_all_participants(inputs: Iterable[BrainwritingInput], participant_count: int) -> bool:
    """Authorship view of team completion: every participant's row has an idea."""
    if participant_count <= 0:
        return False
    return filled_rows(inputs) >= set(range(participant_count))


def is_broadcast_complete(inputs: Iterable[BrainwritingInput], row_budget: int) -> bool:
    return len(filled_rows(inputs)) >= row_budget


def is_team_session_complete(sheets: Sequence[BrainwritingSheet], participant_count: int) -> bool:
    return bool(sheets) and all(
        is_team_sheet_complete(s.turn_index, participant_count) for s in sheets
    )


@dataclass(frozen=True)
class Rotation:
    sheet_id: int
    turn_index: int
    next_user_id: Optional[int]

    @property
    def is_sheet_complete(self) -> bool:
        return self.next_user_id is None


class TurnSequencer:
    """Moves a team sheet to the next participant in its rotation."""

    def __init__(self, rules: BrainwritingRules, locks: LockManager):
        self.rules = rules
        self.locks = locks

    def expected_user(self, participant_ids: Sequence[int], sheet: BrainwritingSheet) -> Optional[int]:
        return current_turn_user(rotation_order(participant_ids, sheet.sequence), sheet.turn_index)

    async def rotate(
        self,
        db: AsyncSession,
        sheet: BrainwritingSheet,
        participant_ids: Sequence[int],
        user_id: int,
    ) -> Rotation:
        order = rotation_order(participant_ids, sheet.sequence)
        turn_index = sheet.turn_index
        if current_turn_user(order, turn_index) != user_id:
            raise WrongTurn("It is not your turn on this sheet", sheet_id=sheet.id, user_id=user_id)

        advanced = await db.execute(
            update(BrainwritingSheet)
            .where(
                BrainwritingSheet.id == sheet.id,
                BrainwritingSheet.turn_index == turn_index,
            )
            .values(turn_index=turn_index + 1)
            .execution_options(synchronize_session=False)
        )
        if advanced.rowcount != 1:
            raise WrongTurn("This turn was already completed", sheet_id=sheet.id, user_id=user_id)

        await self.locks.release(db, sheet.id, user_id)

        next_user_id = current_turn_user(order, turn_index + 1)
        if next_user_id is None:
            logger.info("Sheet %s completed its rotation", sheet.id)
            return Rotation(sheet_id=sheet.id, turn_index=turn_index + 1, next_user_id=None)

        lock = await self.locks.try_acquire(db, sheet.id, next_user_id, self.rules.lock_ttl)
        if not lock.granted:
            raise SheetLocked(sheet.id, lock.held_by, lock.expires_at)

        await insert_empty_row(
            db,
            brainwriting_id=sheet.brainwriting_id,
            sheet_id=sheet.id,
            user_id=next_user_id,
            row_index=turn_index + 1,
            columns=self.rules.columns,
            now=self.locks.now(),
        )
        logger.info("Sheet %s rotated to user %s (turn %d)", sheet.id, next_user_id, turn_index + 1)
        return Rotation(sheet_id=sheet.id, turn_index=turn_index + 1, next_user_id=next_user_id)
