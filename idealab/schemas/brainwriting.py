"""Brainwriting Pydantic schemas — request bodies and API output."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from idealab.models.brainwriting import UsageScope
from idealab.utils.invite import format_share_text, generate_invite_url, share_intent_url


# ── Requests ──

class BrainwritingCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    usage_scope: UsageScope
    title: str = Field(min_length=1, max_length=200)
    theme_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)


class BrainwritingUpdate(BaseModel):
    """Title, theme and description only. The usage scope is fixed at creation."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    theme_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)


class InviteActiveUpdate(BaseModel):
    is_invite_active: bool


class ResultsPublicUpdate(BaseModel):
    is_results_public: bool


class InputUpsert(BaseModel):
    brainwriting_id: Optional[int] = None
    brainwriting_sheet_id: int
    row_index: int = Field(ge=0)
    column_index: int = Field(ge=0)
    content: Optional[str] = Field(default=None, max_length=100)


class AIGenerationCallback(BaseModel):
    """Sent by the AI worker when a generation job finishes."""
    namespace: str
    resource_id: int
    status: str = Field(pattern="^(completed|failed)$")
    correlation_id: Optional[str] = None
    error_message: Optional[str] = None


# ── Output ──

class BrainwritingOut(BaseModel):
    id: int
    user_id: int
    usage_scope: UsageScope
    title: str
    theme_name: str
    description: Optional[str] = None
    invite_token: str
    is_invite_active: bool
    is_results_public: bool
    started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def invite_url(self) -> str:
        return generate_invite_url(self.invite_token)

    @computed_field
    @property
    def share_text(self) -> Optional[str]:
        if self.usage_scope != UsageScope.XPOST:
            return None
        return format_share_text(self.theme_name, self.invite_token)

    @computed_field
    @property
    def share_url(self) -> Optional[str]:
        text = self.share_text
        return share_intent_url(text) if text else None


class BrainwritingSummary(BaseModel):
    """What an invitee sees before joining."""
    id: int
    usage_scope: UsageScope
    title: str
    theme_name: str
    description: Optional[str] = None
    is_invite_active: bool

    model_config = {"from_attributes": True}


class InputOut(BaseModel):
    id: int
    sheet_id: int
    user_id: int
    row_index: int
    column_index: int
    content: Optional[str] = None

    model_config = {"from_attributes": True}


class ParticipantOut(BaseModel):
    id: int
    user_id: int
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    joined_at: datetime
    is_owner: bool

    model_config = {"from_attributes": True}


class SheetOut(BaseModel):
    id: int
    sequence: int
    current_user_id: Optional[int] = None
    lock_expires_at: Optional[datetime] = None
    turn_index: int
    is_locked: bool
    held_by_me: bool
    is_my_turn: bool
    my_row: Optional[int] = None
    is_complete: bool
    inputs: List[InputOut] = []

    model_config = {"from_attributes": True}


class BrainwritingDetailOut(BaseModel):
    brainwriting: BrainwritingOut
    is_owner: bool
    is_joined: bool
    is_started: bool
    is_complete: bool
    max_participants: int
    participants: List[ParticipantOut] = []
    sheets: List[SheetOut] = []

    model_config = {"from_attributes": True}


class SheetDetailOut(BaseModel):
    brainwriting: BrainwritingOut
    sheet: SheetOut
    participants: List[ParticipantOut] = []

    model_config = {"from_attributes": True}


class JoinOut(BaseModel):
    brainwriting_id: int
    user_id: int
    sheet_id: Optional[int] = None
    row_index: Optional[int] = None
    already_joined: bool


class JoinStatusOut(BaseModel):
    is_joined: bool
    sheet_id: Optional[int] = None
    participant_count: int
    max_count: int
    is_full: bool
    is_locked: bool
    lock_expires_at: Optional[datetime] = None
    can_join: bool

    model_config = {"from_attributes": True}


class TurnOut(BaseModel):
    sheet_id: int
    next_user_id: Optional[int] = None
    turn_index: int
    is_sheet_complete: bool

    model_config = {"from_attributes": True}


class StartOut(BaseModel):
    brainwriting_id: int
    sheet_ids: List[int]
