"""
Join coordination.

Admission runs as one transaction: expired locks are reclaimed first, then
capacity, invite and lock checks, then the participant row and (broadcast)
the joiner's empty row. The ``USER_JOINED`` event goes out after the commit.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.core.cells import insert_empty_row
from idealab.core.exceptions import InviteInactive, SessionAlreadyStarted, SessionFull, SheetLocked, StoreUnavailable
from idealab.core.locks import is_locked_by_other
from idealab.core.store import SessionStore
from idealab.core.turns import broadcast_row_for
from idealab.core.views import JoinResult, JoinStatus
from idealab.database import transactional
from idealab.models import Brainwriting, UsageScope
from idealab.services.events import UserJoined

logger = logging.getLogger(__name__)


class JoinCoordinator:
    def __init__(self, store: SessionStore):
        self.store = store
        self.rules = store.rules
        self.locks = store.locks

    async def join(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> JoinResult:
        try:
            result = await self._join(db, brainwriting_id, user_id)
        except IntegrityError:
            # A concurrent request registered the same user first.
            logger.info("Concurrent join of user %s to brainwriting %s resolved as idempotent", user_id, brainwriting_id)
            result = await self._existing(db, brainwriting_id, user_id)

        if not result.already_joined:
            await self.store.publisher.publish(brainwriting_id, UserJoined(user_id=user_id))
        return result

    @staticmethod
    def _own_sheet_id(brainwriting: Brainwriting, sheets, participant_ids, user_id: int) -> Optional[int]:
        """The shared sheet in broadcast mode; the sheet the user started in team mode."""
        if not sheets:
            return None
        if brainwriting.usage_scope == UsageScope.XPOST:
            return sheets[0].id
        position = broadcast_row_for(participant_ids, user_id)
        return next((s.id for s in sheets if s.sequence == position), None)

    @transactional
    async def _existing(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> JoinResult:
        brainwriting = await self.store.load_session(db, brainwriting_id)
        participant = await self.store.find_participant(db, brainwriting_id, user_id)
        if participant is None:
            # The conflicting row was removed again in the meantime.
            raise StoreUnavailable("Concurrent join conflict, please retry")
        return await self._result(db, brainwriting, participant, already_joined=True)

    async def _result(self, db: AsyncSession, brainwriting: Brainwriting, participant, already_joined: bool) -> JoinResult:
        participant_ids = await self.store.participant_ids(db, brainwriting.id)
        sheets = await self.store.sheets(db, brainwriting.id)
        sheet_id = self._own_sheet_id(brainwriting, sheets, participant_ids, participant.user_id)
        row_index = None
        if brainwriting.usage_scope == UsageScope.XPOST:
            row_index = broadcast_row_for(participant_ids, participant.user_id)
        return JoinResult(
            participant=participant,
            sheet_id=sheet_id,
            row_index=row_index,
            already_joined=already_joined,
        )

    @transactional
    async def _join(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> JoinResult:
        # Serializes joins and starts of the same session where the backend supports row locks.
        brainwriting = await self.store.load_session(db, brainwriting_id, for_update=True)
        await self.store.clear_expired(db, brainwriting)

        existing = await self.store.find_participant(db, brainwriting_id, user_id)
        if existing is not None:
            return await self._result(db, brainwriting, existing, already_joined=True)

        if not brainwriting.is_invite_active:
            raise InviteInactive(brainwriting_id)

        sheets = await self.store.sheets(db, brainwriting_id)
        if brainwriting.usage_scope == UsageScope.TEAM and (sheets or brainwriting.started_at is not None):
            raise SessionAlreadyStarted(brainwriting_id)

        participant_ids = await self.store.participant_ids(db, brainwriting_id)
        if len(participant_ids) >= self.rules.max_participants:
            raise SessionFull(len(participant_ids), self.rules.max_participants)

        if brainwriting.usage_scope == UsageScope.TEAM:
            participant = await self.store.register_participant(db, brainwriting_id, user_id)
            logger.info("User %s joined team brainwriting %s", user_id, brainwriting_id)
            return JoinResult(participant=participant, sheet_id=None, row_index=None, already_joined=False)

        sheet = sheets[0]
        lock = await self.locks.try_acquire(db, sheet.id, user_id, self.rules.lock_ttl)
        if not lock.granted:
            raise SheetLocked(sheet.id, lock.held_by, lock.expires_at)

        participant = await self.store.register_participant(db, brainwriting_id, user_id)
        row_index = len(participant_ids)
        await insert_empty_row(
            db,
            brainwriting_id=brainwriting_id,
            sheet_id=sheet.id,
            user_id=user_id,
            row_index=row_index,
            columns=self.rules.columns,
            now=self.locks.now(),
        )
        logger.info("User %s joined broadcast brainwriting %s on row %d", user_id, brainwriting_id, row_index)
        return JoinResult(participant=participant, sheet_id=sheet.id, row_index=row_index, already_joined=False)

    @transactional
    async def join_status(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> JoinStatus:
        brainwriting = await self.store.load_session(db, brainwriting_id)
        await self.store.clear_expired(db, brainwriting)

        participant_ids = await self.store.participant_ids(db, brainwriting_id)
        sheets = await self.store.sheets(db, brainwriting_id)
        is_joined = user_id in participant_ids
        count = len(participant_ids)
        is_full = count >= self.rules.max_participants

        is_locked = False
        lock_expires_at = None
        if brainwriting.usage_scope == UsageScope.XPOST and sheets:
            if is_locked_by_other(sheets[0], user_id, self.locks.now()):
                is_locked = True
                lock_expires_at = sheets[0].lock_expires_at

        if is_joined:
            can_join = False
        elif brainwriting.usage_scope == UsageScope.TEAM:
            can_join = brainwriting.is_invite_active and not is_full and not sheets
        else:
            can_join = brainwriting.is_invite_active and not is_full and not is_locked

        return JoinStatus(
            is_joined=is_joined,
            sheet_id=self._own_sheet_id(brainwriting, sheets, participant_ids, user_id) if is_joined else None,
            participant_count=count,
            max_count=self.rules.max_participants,
            is_full=is_full,
            is_locked=is_locked,
            lock_expires_at=lock_expires_at,
            can_join=can_join,
        )
