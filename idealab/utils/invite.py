"""Invite tokens, invite links and the share post for broadcast sessions."""

import secrets
from urllib.parse import quote

from idealab.config import settings

X_INTENT_URL = "https://twitter.com/intent/tweet?text="
SHARE_HASHTAG = "#IdeaLab"


def generate_invite_token() -> str:
    """32 hex characters."""
    return secrets.token_hex(16)


def generate_invite_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/brainwritings/invite/{token}"


def format_share_text(theme_name: str, invite_token: str) -> str:
    lines = [
        "🧠 Brainwriting",
        f"📝 Theme: {theme_name}",
        "Share your ideas with us!",
        "",
        f"🔗 Join here: {generate_invite_url(invite_token)}",
        "",
        SHARE_HASHTAG,
    ]
    return "\n".join(lines)


def share_intent_url(text: str) -> str:
    return X_INTENT_URL + quote(text, safe="")
