"""Read models returned by the store and the join coordinator."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from idealab.models import Brainwriting, BrainwritingUser


@dataclass
class InputState:
    id: int
    sheet_id: int
    user_id: int
    row_index: int
    column_index: int
    content: Optional[str]


@dataclass
class ParticipantState:
    id: int
    user_id: int
    name: Optional[str]
    avatar_url: Optional[str]
    joined_at: datetime
    is_owner: bool


@dataclass
class SheetState:
    id: int
    sequence: int
    current_user_id: Optional[int]
    lock_expires_at: Optional[datetime]
    turn_index: int
    is_locked: bool
    held_by_me: bool
    is_my_turn: bool
    my_row: Optional[int]
    is_complete: bool
    inputs: List[InputState] = field(default_factory=list)


@dataclass
class SessionDetail:
    brainwriting: Brainwriting
    is_owner: bool
    is_joined: bool
    is_started: bool
    is_complete: bool
    max_participants: int
    participants: List[ParticipantState] = field(default_factory=list)
    sheets: List[SheetState] = field(default_factory=list)


@dataclass
class SheetDetail:
    brainwriting: Brainwriting
    sheet: SheetState
    participants: List[ParticipantState] = field(default_factory=list)


@dataclass
class JoinStatus:
    is_joined: bool
    sheet_id: Optional[int]
    participant_count: int
    max_count: int
    is_full: bool
    is_locked: bool
    lock_expires_at: Optional[datetime]
    can_join: bool


@dataclass
class JoinResult:
    participant: BrainwritingUser
    sheet_id: Optional[int]
    row_index: Optional[int]
    already_joined: bool


@dataclass
class TurnOutcome:
    sheet_id: int
    next_user_id: Optional[int]
    turn_index: int
    is_sheet_complete: bool
