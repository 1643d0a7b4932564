"""User Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserOut(BaseModel):
    """Public user representation returned by the API."""
    id: int
    email: str
    name: str
    oauth_provider: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
