"""
Brainwriting exceptions.

Domain rejections are expected, user-facing outcomes (full session, sheet held
by someone else, wrong turn ...). They carry a stable ``code`` and an HTTP
status so the API layer can render them without inspecting the type.
``StoreUnavailable`` is the only infrastructure fault; it is safe to retry the
whole operation because every multi-step write runs in one transaction.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class IdeaLabException(Exception):
    """Base class for every Idea Lab error."""
    pass


class DomainRejection(IdeaLabException):
    """A request that is well-formed but not allowed in the current state."""

    code = "rejected"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(message)


# ============ Lookup ============

class SessionNotFound(DomainRejection):
    code = "session_not_found"
    status_code = 404

    def __init__(self, brainwriting_id=None, invite_token: Optional[str] = None):
        self.brainwriting_id = brainwriting_id
        if invite_token is not None:
            super().__init__("No brainwriting matches this invite link", invite_token=invite_token)
        else:
            super().__init__(f"Brainwriting {brainwriting_id} not found", brainwriting_id=brainwriting_id)


class SheetNotFound(DomainRejection):
    code = "sheet_not_found"
    status_code = 404

    def __init__(self, sheet_id):
        self.sheet_id = sheet_id
        super().__init__(f"Sheet {sheet_id} not found", sheet_id=sheet_id)


# ============ Membership ============

class NotJoined(DomainRejection):
    """User is not a participant of the session."""
    code = "not_joined"
    status_code = 403

    def __init__(self, brainwriting_id, user_id):
        super().__init__(
            f"User {user_id} has not joined brainwriting {brainwriting_id}",
            brainwriting_id=brainwriting_id,
            user_id=user_id,
        )


class NotSessionOwner(DomainRejection):
    code = "not_owner"
    status_code = 403

    def __init__(self, brainwriting_id):
        super().__init__(
            f"Only the owner can modify brainwriting {brainwriting_id}",
            brainwriting_id=brainwriting_id,
        )


class SessionFull(DomainRejection):
    code = "session_full"
    status_code = 409

    def __init__(self, current_count: int, max_count: int):
        super().__init__(
            "The participant limit has been reached",
            current_count=current_count,
            max_count=max_count,
        )


class InviteInactive(DomainRejection):
    code = "invite_inactive"
    status_code = 403

    def __init__(self, brainwriting_id):
        super().__init__(
            f"The invite link for brainwriting {brainwriting_id} is disabled",
            brainwriting_id=brainwriting_id,
        )


class SessionAlreadyStarted(DomainRejection):
    """Team sessions stop accepting new participants once sheets exist."""
    code = "already_started"
    status_code = 409

    def __init__(self, brainwriting_id):
        super().__init__(
            f"Brainwriting {brainwriting_id} has already started",
            brainwriting_id=brainwriting_id,
        )


class DuplicateStart(DomainRejection):
    code = "duplicate_start"
    status_code = 409

    def __init__(self, brainwriting_id):
        super().__init__(
            f"Brainwriting {brainwriting_id} was already started",
            brainwriting_id=brainwriting_id,
        )


class InvalidUsageMode(DomainRejection):
    code = "invalid_usage_mode"
    status_code = 400


# ============ Turn / lock ============

class SheetLocked(DomainRejection):
    """Someone else holds a non-expired lock on the sheet. Retry later."""
    code = "sheet_locked"
    status_code = 409

    def __init__(self, sheet_id, held_by: Optional[int], expires_at: Optional[datetime]):
        self.sheet_id = sheet_id
        self.held_by = held_by
        self.expires_at = expires_at
        super().__init__(
            "Another participant is editing this sheet",
            sheet_id=sheet_id,
            held_by=held_by,
            expires_at=expires_at.isoformat() if expires_at else None,
        )


class WrongTurn(DomainRejection):
    code = "wrong_turn"
    status_code = 409


class InvalidCellCoordinates(DomainRejection):
    code = "invalid_cell"
    status_code = 422

    def __init__(self, row_index: int, column_index: int):
        super().__init__(
            f"Cell ({row_index}, {column_index}) is outside the sheet",
            row_index=row_index,
            column_index=column_index,
        )


# ============ Infrastructure ============

class StoreUnavailable(IdeaLabException):
    """Persistence failed; nothing was committed and the call may be retried."""

    code = "store_unavailable"
    status_code = 503
    retryable = True

    def __init__(self, message: str = "The database is unavailable"):
        self.message = message
        super().__init__(message)
