"""
Brainwriting router — sessions, joining, turns and sheets.

Domain rejections raised by the store propagate to the exception handlers
registered in ``idealab.main`` and are rendered as ``{"error": {...}}``.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.core.join import JoinCoordinator
from idealab.core.store import SessionStore
from idealab.database import get_db
from idealab.dependencies import get_coordinator, get_store
from idealab.models.user import User
from idealab.routers.auth import require_user
from idealab.schemas.brainwriting import (
    BrainwritingCreate,
    BrainwritingDetailOut,
    BrainwritingOut,
    BrainwritingSummary,
    BrainwritingUpdate,
    InputOut,
    InputUpsert,
    InviteActiveUpdate,
    JoinOut,
    JoinStatusOut,
    ParticipantOut,
    ResultsPublicUpdate,
    SheetDetailOut,
    SheetOut,
    StartOut,
    TurnOut,
)

router = APIRouter(prefix="/api/brainwritings", tags=["brainwritings"])


# ═══════════════════════════════════════════════════════════════
#  Sessions
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=List[BrainwritingOut])
async def list_brainwritings(
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    """Sessions owned by the current user, newest first."""
    return await store.list_sessions(db, current_user.id)


@router.post("", response_model=BrainwritingOut, status_code=status.HTTP_201_CREATED)
async def create_brainwriting(
    payload: BrainwritingCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.create_session(
        db,
        current_user.id,
        payload.usage_scope,
        payload.title,
        payload.theme_name,
        payload.description,
    )


@router.get("/invite/{token}", response_model=BrainwritingSummary)
async def resolve_invite(
    token: str,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.get_by_invite_token(db, token)


# ═══════════════════════════════════════════════════════════════
#  Cells & turns
# ═══════════════════════════════════════════════════════════════

@router.post("/input", response_model=InputOut)
async def upsert_input(
    payload: InputUpsert,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    """Write one idea cell on the caller's current row."""
    cell = await store.upsert_input(
        db,
        payload.brainwriting_id,
        payload.brainwriting_sheet_id,
        current_user.id,
        payload.row_index,
        payload.column_index,
        payload.content,
    )
    return InputOut(
        id=cell.id,
        sheet_id=cell.brainwriting_sheet_id,
        user_id=cell.user_id,
        row_index=cell.row_index,
        column_index=cell.column_index,
        content=cell.content,
    )


@router.get("/sheets/{sheet_id}", response_model=SheetDetailOut)
async def read_sheet(
    sheet_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    detail = await store.get_sheet_detail(db, sheet_id, current_user.id)
    return SheetDetailOut.model_validate(detail)


@router.post("/sheets/{sheet_id}/complete", response_model=TurnOut)
async def complete_sheet_turn(
    sheet_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    """Finish the caller's turn: rotate a team sheet or release a broadcast sheet."""
    return await store.complete_turn(db, sheet_id, current_user.id)


# ═══════════════════════════════════════════════════════════════
#  Single session
# ═══════════════════════════════════════════════════════════════

@router.get("/{brainwriting_id}", response_model=BrainwritingDetailOut)
async def read_brainwriting(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    detail = await store.get_detail(db, brainwriting_id, current_user.id)
    return BrainwritingDetailOut.model_validate(detail)


@router.patch("/{brainwriting_id}", response_model=BrainwritingOut)
async def update_brainwriting(
    brainwriting_id: int,
    payload: BrainwritingUpdate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.update_session(
        db, brainwriting_id, current_user.id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{brainwriting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_brainwriting(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    await store.delete_session(db, brainwriting_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{brainwriting_id}/join", response_model=JoinOut)
async def join_brainwriting(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    coordinator: JoinCoordinator = Depends(get_coordinator),
):
    result = await coordinator.join(db, brainwriting_id, current_user.id)
    return JoinOut(
        brainwriting_id=brainwriting_id,
        user_id=current_user.id,
        sheet_id=result.sheet_id,
        row_index=result.row_index,
        already_joined=result.already_joined,
    )


@router.get("/{brainwriting_id}/join-status", response_model=JoinStatusOut)
async def read_join_status(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    coordinator: JoinCoordinator = Depends(get_coordinator),
):
    return await coordinator.join_status(db, brainwriting_id, current_user.id)


@router.post("/{brainwriting_id}/start", response_model=StartOut)
async def start_brainwriting(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    """Team mode: hand every participant their own sheet."""
    sheets = await store.start_session(db, brainwriting_id, current_user.id)
    return StartOut(brainwriting_id=brainwriting_id, sheet_ids=[s.id for s in sheets])


@router.get("/{brainwriting_id}/users", response_model=List[ParticipantOut])
async def list_brainwriting_users(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.list_participants(db, brainwriting_id, current_user.id)


@router.get("/{brainwriting_id}/sheets", response_model=List[SheetOut])
async def list_brainwriting_sheets(
    brainwriting_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.list_sheets(db, brainwriting_id, current_user.id)


# ── Owner toggles ──

@router.patch("/{brainwriting_id}/invite-active", response_model=BrainwritingOut)
async def update_invite_active(
    brainwriting_id: int,
    payload: InviteActiveUpdate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.set_invite_active(db, brainwriting_id, current_user.id, payload.is_invite_active)


@router.patch("/{brainwriting_id}/results-public", response_model=BrainwritingOut)
async def update_results_public(
    brainwriting_id: int,
    payload: ResultsPublicUpdate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_store),
):
    return await store.set_results_public(db, brainwriting_id, current_user.id, payload.is_results_public)
