"""
Brainwriting session store.

The single source of truth for sessions, participants, sheets and inputs.
Every public operation runs inside one transaction (``@transactional``) and
publishes its realtime event only after the commit. The query helpers at the
top do not commit and are shared with the join coordinator, which composes
them into its own transaction.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.config import BrainwritingRules
from idealab.core.cells import insert_empty_row, upsert_cell
from idealab.core.exceptions import (
    DuplicateStart,
    InvalidCellCoordinates,
    InvalidUsageMode,
    NotJoined,
    NotSessionOwner,
    SessionNotFound,
    SheetLocked,
    SheetNotFound,
    WrongTurn,
)
from idealab.core.locks import LockManager, ReclaimedLock, holds, is_lock_active, is_locked_by_other
from idealab.core.turns import (
    TurnSequencer,
    broadcast_row_for,
    current_turn_user,
    is_broadcast_complete,
    is_team_session_complete,
    is_team_sheet_complete,
    rotation_order,
    row_for,
)
from idealab.core.views import InputState, ParticipantState, SessionDetail, SheetDetail, SheetState, TurnOutcome
from idealab.database import transactional
from idealab.models import (
    Brainwriting,
    BrainwritingInput,
    BrainwritingSheet,
    BrainwritingUser,
    UsageScope,
    User,
)
from idealab.services.events import BrainwritingStarted, EventPublisher, SheetRotated
from idealab.utils.invite import generate_invite_token

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "theme_name", "description")


class SessionStore:
    def __init__(
        self,
        rules: BrainwritingRules,
        locks: LockManager,
        turns: TurnSequencer,
        publisher: EventPublisher,
    ):
        self.rules = rules
        self.locks = locks
        self.turns = turns
        self.publisher = publisher

    def now(self):
        return self.locks.now()

    # ══════════════════════════════════════════════════════════════════════
    # Queries (no commit)
    # ══════════════════════════════════════════════════════════════════════

    async def load_session(self, db: AsyncSession, brainwriting_id: int, for_update: bool = False) -> Brainwriting:
        stmt = (
            select(Brainwriting)
            .where(Brainwriting.id == brainwriting_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        brainwriting = (await db.execute(stmt)).scalar_one_or_none()
        if brainwriting is None:
            raise SessionNotFound(brainwriting_id)
        return brainwriting

    async def load_sheet(self, db: AsyncSession, sheet_id: int) -> BrainwritingSheet:
        sheet = await self.locks.get_sheet(db, sheet_id)
        if sheet is None:
            raise SheetNotFound(sheet_id)
        return sheet

    async def participants(self, db: AsyncSession, brainwriting_id: int) -> List[BrainwritingUser]:
        """Participants in join order."""
        result = await db.execute(
            select(BrainwritingUser)
            .where(BrainwritingUser.brainwriting_id == brainwriting_id)
            .order_by(BrainwritingUser.id)
        )
        return list(result.scalars().all())

    async def participant_ids(self, db: AsyncSession, brainwriting_id: int) -> List[int]:
        result = await db.execute(
            select(BrainwritingUser.user_id)
            .where(BrainwritingUser.brainwriting_id == brainwriting_id)
            .order_by(BrainwritingUser.id)
        )
        return list(result.scalars().all())

    async def find_participant(
        self, db: AsyncSession, brainwriting_id: int, user_id: int
    ) -> Optional[BrainwritingUser]:
        result = await db.execute(
            select(BrainwritingUser).where(
                BrainwritingUser.brainwriting_id == brainwriting_id,
                BrainwritingUser.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def sheets(self, db: AsyncSession, brainwriting_id: int) -> List[BrainwritingSheet]:
        result = await db.execute(
            select(BrainwritingSheet)
            .where(BrainwritingSheet.brainwriting_id == brainwriting_id)
            .order_by(BrainwritingSheet.sequence, BrainwritingSheet.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def inputs(self, db: AsyncSession, brainwriting_id: int) -> List[BrainwritingInput]:
        result = await db.execute(
            select(BrainwritingInput)
            .where(BrainwritingInput.brainwriting_id == brainwriting_id)
            .order_by(
                BrainwritingInput.brainwriting_sheet_id,
                BrainwritingInput.row_index,
                BrainwritingInput.column_index,
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sheet_inputs(self, db: AsyncSession, sheet_id: int) -> List[BrainwritingInput]:
        result = await db.execute(
            select(BrainwritingInput)
            .where(BrainwritingInput.brainwriting_sheet_id == sheet_id)
            .order_by(BrainwritingInput.row_index, BrainwritingInput.column_index)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def register_participant(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> BrainwritingUser:
        participant = BrainwritingUser(brainwriting_id=brainwriting_id, user_id=user_id, created_at=self.now())
        db.add(participant)
        await db.flush()
        return participant

    async def clear_expired(self, db: AsyncSession, brainwriting: Brainwriting) -> List[ReclaimedLock]:
        """Clear expired locks; broadcast sessions also free slots of users who left nothing."""
        reclaimed = await self.locks.clear_expired(db, brainwriting.id)
        if reclaimed and brainwriting.usage_scope == UsageScope.XPOST:
            await self.reclaim_abandoned(db, brainwriting, reclaimed)
        return reclaimed

    async def reclaim_abandoned(
        self, db: AsyncSession, brainwriting: Brainwriting, reclaimed: Sequence[ReclaimedLock]
    ) -> List[int]:
        removed: List[int] = []
        for lock in reclaimed:
            if lock.user_id == brainwriting.user_id:
                continue
            written = await db.scalar(
                select(func.count())
                .select_from(BrainwritingInput)
                .where(
                    BrainwritingInput.brainwriting_sheet_id == lock.sheet_id,
                    BrainwritingInput.user_id == lock.user_id,
                    BrainwritingInput.content.is_not(None),
                )
            )
            if written:
                continue

            await db.execute(
                delete(BrainwritingInput).where(
                    BrainwritingInput.brainwriting_sheet_id == lock.sheet_id,
                    BrainwritingInput.user_id == lock.user_id,
                )
            )
            await db.execute(
                delete(BrainwritingUser).where(
                    BrainwritingUser.brainwriting_id == brainwriting.id,
                    BrainwritingUser.user_id == lock.user_id,
                )
            )
            removed.append(lock.user_id)
            logger.info(
                "Removed abandoned participant %s from brainwriting %s", lock.user_id, brainwriting.id
            )
        return removed

    async def _owned_session(self, db: AsyncSession, brainwriting_id: int, owner_id: int) -> Brainwriting:
        brainwriting = await self.load_session(db, brainwriting_id)
        if brainwriting.user_id != owner_id:
            raise NotSessionOwner(brainwriting_id)
        return brainwriting

    # ══════════════════════════════════════════════════════════════════════
    # Lifecycle
    # ══════════════════════════════════════════════════════════════════════

    @transactional
    async def create_session(
        self,
        db: AsyncSession,
        owner_id: int,
        usage_scope,
        title: str,
        theme_name: str,
        description: Optional[str] = None,
    ) -> Brainwriting:
        try:
            scope = UsageScope(usage_scope)
        except ValueError:
            raise InvalidUsageMode(f"Unknown usage scope: {usage_scope}", usage_scope=str(usage_scope))

        now = self.now()
        brainwriting = Brainwriting(
            user_id=owner_id,
            usage_scope=scope,
            title=title,
            theme_name=theme_name,
            description=description,
            invite_token=generate_invite_token(),
            is_invite_active=True,
            is_results_public=False,
            created_at=now,
            updated_at=now,
        )
        db.add(brainwriting)
        await db.flush()
        await self.register_participant(db, brainwriting.id, owner_id)

        if scope == UsageScope.XPOST:
            # The owner writes the first row of the shared sheet.
            sheet = BrainwritingSheet(
                brainwriting_id=brainwriting.id,
                sequence=0,
                current_user_id=owner_id,
                lock_expires_at=now + self.rules.lock_ttl,
                turn_index=0,
                created_at=now,
                updated_at=now,
            )
            db.add(sheet)
            await db.flush()
            await insert_empty_row(
                db,
                brainwriting_id=brainwriting.id,
                sheet_id=sheet.id,
                user_id=owner_id,
                row_index=0,
                columns=self.rules.columns,
                now=now,
            )

        logger.info("Brainwriting %s created by user %s (%s)", brainwriting.id, owner_id, scope.value)
        return brainwriting

    async def start_session(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> List[BrainwritingSheet]:
        sheets = await self._start_session(db, brainwriting_id, user_id)
        await self.publisher.publish(brainwriting_id, BrainwritingStarted())
        return sheets

    @transactional
    async def _start_session(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> List[BrainwritingSheet]:
        brainwriting = await self.load_session(db, brainwriting_id, for_update=True)
        if brainwriting.usage_scope != UsageScope.TEAM:
            raise InvalidUsageMode(
                "Only team brainwritings are started explicitly", brainwriting_id=brainwriting_id
            )

        participant_ids = await self.participant_ids(db, brainwriting_id)
        if user_id not in participant_ids:
            raise NotJoined(brainwriting_id, user_id)

        if brainwriting.started_at is not None or await self.sheets(db, brainwriting_id):
            raise DuplicateStart(brainwriting_id)

        now = self.now()
        claimed = await db.execute(
            update(Brainwriting)
            .where(Brainwriting.id == brainwriting_id, Brainwriting.started_at.is_(None))
            .values(started_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise DuplicateStart(brainwriting_id)

        sheets = [
            BrainwritingSheet(
                brainwriting_id=brainwriting_id,
                sequence=sequence,
                current_user_id=participant_id,
                lock_expires_at=now + self.rules.lock_ttl,
                turn_index=0,
                created_at=now,
                updated_at=now,
            )
            for sequence, participant_id in enumerate(participant_ids)
        ]
        db.add_all(sheets)
        await db.flush()

        for sheet in sheets:
            await insert_empty_row(
                db,
                brainwriting_id=brainwriting_id,
                sheet_id=sheet.id,
                user_id=sheet.current_user_id,
                row_index=0,
                columns=self.rules.columns,
                now=now,
            )

        logger.info("Brainwriting %s started with %d sheets", brainwriting_id, len(sheets))
        return sheets

    # ══════════════════════════════════════════════════════════════════════
    # Turns
    # ══════════════════════════════════════════════════════════════════════

    def _row_limit(self, brainwriting: Brainwriting, participant_ids: Sequence[int]) -> int:
        """Rows a sheet can hold: one per participant in team mode, the larger of budget and capacity otherwise."""
        if brainwriting.usage_scope == UsageScope.TEAM:
            return len(participant_ids)
        return max(self.rules.row_budget, self.rules.max_participants)

    def _check_team_turn(self, sheet: BrainwritingSheet, participant_ids: Sequence[int], user_id: int) -> None:
        if is_team_sheet_complete(sheet.turn_index, len(participant_ids)):
            raise WrongTurn("This sheet has completed its rotation", sheet_id=sheet.id)
        if self.turns.expected_user(participant_ids, sheet) == user_id:
            return
        if is_locked_by_other(sheet, user_id, self.now()):
            raise SheetLocked(sheet.id, sheet.current_user_id, sheet.lock_expires_at)
        raise WrongTurn("It is not your turn on this sheet", sheet_id=sheet.id, user_id=user_id)

    @transactional
    async def upsert_input(
        self,
        db: AsyncSession,
        brainwriting_id: Optional[int],
        sheet_id: int,
        user_id: int,
        row_index: int,
        column_index: int,
        content: Optional[str],
    ) -> BrainwritingInput:
        if row_index < 0 or not 0 <= column_index < self.rules.columns:
            raise InvalidCellCoordinates(row_index, column_index)

        sheet = await self.load_sheet(db, sheet_id)
        if brainwriting_id is not None and sheet.brainwriting_id != brainwriting_id:
            raise SheetNotFound(sheet_id)
        brainwriting = await self.load_session(db, sheet.brainwriting_id)

        participant_ids = await self.participant_ids(db, brainwriting.id)
        if user_id not in participant_ids:
            raise NotJoined(brainwriting.id, user_id)
        if row_index >= self._row_limit(brainwriting, participant_ids):
            raise InvalidCellCoordinates(row_index, column_index)

        now = self.now()
        if brainwriting.usage_scope == UsageScope.TEAM:
            self._check_team_turn(sheet, participant_ids, user_id)
            if row_index != sheet.turn_index:
                raise WrongTurn("You can only write on your own row", sheet_id=sheet_id, row_index=row_index)
            if not holds(sheet, user_id, now):
                # Our lock lapsed while nobody else could take it; take it back.
                lock = await self.locks.try_acquire(db, sheet_id, user_id, self.rules.lock_ttl)
                if not lock.granted:
                    raise SheetLocked(sheet_id, lock.held_by, lock.expires_at)
        else:
            if not holds(sheet, user_id, now):
                if is_locked_by_other(sheet, user_id, now):
                    raise SheetLocked(sheet_id, sheet.current_user_id, sheet.lock_expires_at)
                raise WrongTurn("You do not hold this sheet", sheet_id=sheet_id, user_id=user_id)
            if row_index != broadcast_row_for(participant_ids, user_id):
                raise WrongTurn("You can only write on your own row", sheet_id=sheet_id, row_index=row_index)

        await upsert_cell(
            db,
            brainwriting_id=brainwriting.id,
            sheet_id=sheet_id,
            user_id=user_id,
            row_index=row_index,
            column_index=column_index,
            content=content,
            now=now,
        )
        result = await db.execute(
            select(BrainwritingInput)
            .where(
                BrainwritingInput.brainwriting_sheet_id == sheet_id,
                BrainwritingInput.row_index == row_index,
                BrainwritingInput.column_index == column_index,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def complete_turn(self, db: AsyncSession, sheet_id: int, user_id: int) -> TurnOutcome:
        brainwriting_id, outcome, rotated = await self._complete_turn(db, sheet_id, user_id)
        if rotated:
            await self.publisher.publish(
                brainwriting_id,
                SheetRotated(sheet_id=outcome.sheet_id, next_user_id=outcome.next_user_id),
            )
        return outcome

    @transactional
    async def _complete_turn(self, db: AsyncSession, sheet_id: int, user_id: int):
        sheet = await self.load_sheet(db, sheet_id)
        brainwriting = await self.load_session(db, sheet.brainwriting_id)
        participant_ids = await self.participant_ids(db, brainwriting.id)
        if user_id not in participant_ids:
            raise NotJoined(brainwriting.id, user_id)

        if brainwriting.usage_scope == UsageScope.XPOST:
            released = await self.locks.release(db, sheet_id, user_id)
            if released:
                logger.info("User %s finished on broadcast sheet %s", user_id, sheet_id)
            inputs = await self.sheet_inputs(db, sheet_id)
            outcome = TurnOutcome(
                sheet_id=sheet_id,
                next_user_id=None,
                turn_index=sheet.turn_index,
                is_sheet_complete=is_broadcast_complete(inputs, self.rules.row_budget),
            )
            return brainwriting.id, outcome, False

        self._check_team_turn(sheet, participant_ids, user_id)
        rotation = await self.turns.rotate(db, sheet, participant_ids, user_id)
        outcome = TurnOutcome(
            sheet_id=sheet_id,
            next_user_id=rotation.next_user_id,
            turn_index=rotation.turn_index,
            is_sheet_complete=rotation.is_sheet_complete,
        )
        return brainwriting.id, outcome, True

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def _participant_states(
        self, db: AsyncSession, brainwriting: Brainwriting, participants: Sequence[BrainwritingUser]
    ) -> List[ParticipantState]:
        user_ids = [p.user_id for p in participants]
        users: Dict[int, tuple] = {}
        if user_ids:
            result = await db.execute(
                select(User.id, User.name, User.avatar_url).where(User.id.in_(user_ids))
            )
            users = {row.id: (row.name, row.avatar_url) for row in result.all()}
        return [
            ParticipantState(
                id=p.id,
                user_id=p.user_id,
                name=users.get(p.user_id, (None, None))[0],
                avatar_url=users.get(p.user_id, (None, None))[1],
                joined_at=p.created_at,
                is_owner=p.user_id == brainwriting.user_id,
            )
            for p in participants
        ]

    def _sheet_state(
        self,
        brainwriting: Brainwriting,
        sheet: BrainwritingSheet,
        participant_ids: Sequence[int],
        inputs: Sequence[BrainwritingInput],
        user_id: Optional[int],
    ) -> SheetState:
        now = self.now()
        if brainwriting.usage_scope == UsageScope.TEAM:
            order = rotation_order(participant_ids, sheet.sequence)
            my_row = row_for(order, user_id)
            is_complete = is_team_sheet_complete(sheet.turn_index, len(participant_ids))
            is_my_turn = (
                current_turn_user(order, sheet.turn_index) == user_id
                and not is_locked_by_other(sheet, user_id, now)
            )
        else:
            my_row = broadcast_row_for(participant_ids, user_id)
            is_complete = is_broadcast_complete(inputs, self.rules.row_budget)
            is_my_turn = holds(sheet, user_id, now)

        return SheetState(
            id=sheet.id,
            sequence=sheet.sequence,
            current_user_id=sheet.current_user_id,
            lock_expires_at=sheet.lock_expires_at,
            turn_index=sheet.turn_index,
            is_locked=is_lock_active(sheet, now),
            held_by_me=holds(sheet, user_id, now),
            is_my_turn=is_my_turn,
            my_row=my_row,
            is_complete=is_complete,
            inputs=[
                InputState(
                    id=i.id,
                    sheet_id=i.brainwriting_sheet_id,
                    user_id=i.user_id,
                    row_index=i.row_index,
                    column_index=i.column_index,
                    content=i.content,
                )
                for i in inputs
            ],
        )

    def _ensure_can_view(self, brainwriting: Brainwriting, participant_ids: Sequence[int], user_id: int) -> None:
        if brainwriting.user_id == user_id or user_id in participant_ids:
            return
        if brainwriting.is_results_public:
            return
        raise NotJoined(brainwriting.id, user_id)

    async def _sheet_states(
        self, db: AsyncSession, brainwriting: Brainwriting, participant_ids: Sequence[int], user_id: int
    ) -> List[SheetState]:
        sheets = await self.sheets(db, brainwriting.id)
        by_sheet: Dict[int, List[BrainwritingInput]] = defaultdict(list)
        for i in await self.inputs(db, brainwriting.id):
            by_sheet[i.brainwriting_sheet_id].append(i)
        return [
            self._sheet_state(brainwriting, sheet, participant_ids, by_sheet[sheet.id], user_id)
            for sheet in sheets
        ]

    @transactional
    async def get_detail(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> SessionDetail:
        brainwriting = await self.load_session(db, brainwriting_id)
        await self.clear_expired(db, brainwriting)

        participants = await self.participants(db, brainwriting_id)
        participant_ids = [p.user_id for p in participants]
        self._ensure_can_view(brainwriting, participant_ids, user_id)

        sheet_states = await self._sheet_states(db, brainwriting, participant_ids, user_id)
        if brainwriting.usage_scope == UsageScope.TEAM:
            is_complete = is_team_session_complete(sheet_states, len(participant_ids))
        else:
            is_complete = bool(sheet_states) and sheet_states[0].is_complete

        return SessionDetail(
            brainwriting=brainwriting,
            is_owner=brainwriting.user_id == user_id,
            is_joined=user_id in participant_ids,
            is_started=bool(sheet_states),
            is_complete=is_complete,
            max_participants=self.rules.max_participants,
            participants=await self._participant_states(db, brainwriting, participants),
            sheets=sheet_states,
        )

    @transactional
    async def get_sheet_detail(self, db: AsyncSession, sheet_id: int, user_id: int) -> SheetDetail:
        sheet = await self.load_sheet(db, sheet_id)
        brainwriting = await self.load_session(db, sheet.brainwriting_id)
        await self.clear_expired(db, brainwriting)

        participants = await self.participants(db, brainwriting.id)
        participant_ids = [p.user_id for p in participants]
        if user_id not in participant_ids:
            raise NotJoined(brainwriting.id, user_id)

        sheet = await self.load_sheet(db, sheet_id)
        inputs = await self.sheet_inputs(db, sheet_id)
        return SheetDetail(
            brainwriting=brainwriting,
            sheet=self._sheet_state(brainwriting, sheet, participant_ids, inputs, user_id),
            participants=await self._participant_states(db, brainwriting, participants),
        )

    async def list_sessions(self, db: AsyncSession, owner_id: int) -> List[Brainwriting]:
        result = await db.execute(
            select(Brainwriting)
            .where(Brainwriting.user_id == owner_id)
            .order_by(Brainwriting.created_at.desc(), Brainwriting.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_invite_token(self, db: AsyncSession, token: str) -> Brainwriting:
        result = await db.execute(select(Brainwriting).where(Brainwriting.invite_token == token))
        brainwriting = result.scalar_one_or_none()
        if brainwriting is None:
            raise SessionNotFound(invite_token=token)
        return brainwriting

    @transactional
    async def list_participants(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> List[ParticipantState]:
        brainwriting = await self.load_session(db, brainwriting_id)
        await self.clear_expired(db, brainwriting)
        participants = await self.participants(db, brainwriting_id)
        self._ensure_can_view(brainwriting, [p.user_id for p in participants], user_id)
        return await self._participant_states(db, brainwriting, participants)

    @transactional
    async def list_sheets(self, db: AsyncSession, brainwriting_id: int, user_id: int) -> List[SheetState]:
        brainwriting = await self.load_session(db, brainwriting_id)
        await self.clear_expired(db, brainwriting)
        participant_ids = await self.participant_ids(db, brainwriting_id)
        self._ensure_can_view(brainwriting, participant_ids, user_id)
        return await self._sheet_states(db, brainwriting, participant_ids, user_id)

    # ══════════════════════════════════════════════════════════════════════
    # Owner settings
    # ══════════════════════════════════════════════════════════════════════

    @transactional
    async def update_session(self, db: AsyncSession, brainwriting_id: int, owner_id: int, **changes) -> Brainwriting:
        if "usage_scope" in changes:
            raise InvalidUsageMode("The usage scope cannot be changed", brainwriting_id=brainwriting_id)
        brainwriting = await self._owned_session(db, brainwriting_id, owner_id)
        for field_name in EDITABLE_FIELDS:
            if field_name in changes:
                setattr(brainwriting, field_name, changes[field_name])
        await db.flush()
        return brainwriting

    @transactional
    async def delete_session(self, db: AsyncSession, brainwriting_id: int, owner_id: int) -> None:
        await self._owned_session(db, brainwriting_id, owner_id)
        await db.execute(delete(BrainwritingInput).where(BrainwritingInput.brainwriting_id == brainwriting_id))
        await db.execute(delete(BrainwritingSheet).where(BrainwritingSheet.brainwriting_id == brainwriting_id))
        await db.execute(delete(BrainwritingUser).where(BrainwritingUser.brainwriting_id == brainwriting_id))
        await db.execute(delete(Brainwriting).where(Brainwriting.id == brainwriting_id))
        logger.info("Brainwriting %s deleted by user %s", brainwriting_id, owner_id)

    @transactional
    async def set_invite_active(self, db: AsyncSession, brainwriting_id: int, owner_id: int, active: bool) -> Brainwriting:
        brainwriting = await self._owned_session(db, brainwriting_id, owner_id)
        brainwriting.is_invite_active = active
        await db.flush()
        return brainwriting

    @transactional
    async def set_results_public(self, db: AsyncSession, brainwriting_id: int, owner_id: int, public: bool) -> Brainwriting:
        brainwriting = await self._owned_session(db, brainwriting_id, owner_id)
        brainwriting.is_results_public = public
        await db.flush()
        return brainwriting
