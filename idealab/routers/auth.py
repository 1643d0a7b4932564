"""
Authentication router — OAuth sign-in (Google, GitHub) + JWT cookie.

Endpoints:
    GET  /auth/login/{provider}    → redirect to OAuth consent screen
    GET  /auth/callback/{provider} → handle OAuth callback, create/login user
    GET  /auth/logout              → clear JWT cookie
"""

import logging
from typing import Optional

from datetime import datetime, timedelta, timezone

from authlib.integrations.starlette_client import OAuth, OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idealab.config import settings
from idealab.database import get_db
from idealab.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

COOKIE_KEY = "access_token"

# ═══════════════════════════════════════════════════════════════
#  OAuth client setup
# ═══════════════════════════════════════════════════════════════

oauth = OAuth()

# ── Google ──
oauth.register(
    name="google",
    client_id=settings.GOOGLE_CLIENT_ID,
    client_secret=settings.GOOGLE_CLIENT_SECRET,
    server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    client_kwargs={"scope": "openid email profile"},
)

# ── GitHub ──
oauth.register(
    name="github",
    client_id=settings.GITHUB_CLIENT_ID,
    client_secret=settings.GITHUB_CLIENT_SECRET,
    access_token_url="https://github.com/login/oauth/access_token",
    authorize_url="https://github.com/login/oauth/authorize",
    api_base_url="https://api.github.com/",
    client_kwargs={"scope": "user:email"},
)

VALID_PROVIDERS = {"google", "github"}


# ═══════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════

def create_access_token(data: dict) -> str:
    """Create a signed JWT with an expiry claim."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_user_id(token: Optional[str]) -> Optional[int]:
    """Return the user id carried by a JWT, or None if it is missing or invalid."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id = int(payload.get("sub", 0))
    except (JWTError, ValueError, TypeError):
        return None
    return user_id or None


def set_auth_cookie(response, user_id: int):
    """Attach the JWT cookie to a response."""
    token = create_access_token({"sub": str(user_id)})
    response.set_cookie(
        key=COOKIE_KEY,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
    )
    return response


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Extract the JWT from the cookie, decode it, and return the User.
    Returns None when no valid token is present (allows public pages).
    """
    user_id = decode_user_id(request.cookies.get(COOKIE_KEY))
    if not user_id:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if not current_user:
        raise HTTPException(status_code=401, detail="Login required")
    return current_user


async def _get_oauth_user_info(provider: str, token: dict, client) -> dict:
    """
    Fetch the user's profile from the OAuth provider.
    Returns dict with keys: email, name, picture, oauth_id
    """
    if provider == "google":
        userinfo = token.get("userinfo", {})
        return {
            "email": userinfo.get("email"),
            "name": userinfo.get("name", ""),
            "picture": userinfo.get("picture"),
            "oauth_id": userinfo.get("sub"),
        }

    elif provider == "github":
        resp = await client.get("user", token=token)
        profile = resp.json()

        # Private GitHub emails are only listed by /user/emails
        email = profile.get("email")
        if not email:
            emails_resp = await client.get("user/emails", token=token)
            emails = emails_resp.json()
            primary = next((e for e in emails if e.get("primary")), None)
            email = primary["email"] if primary else None

        return {
            "email": email,
            "name": profile.get("name") or profile.get("login", ""),
            "picture": profile.get("avatar_url"),
            "oauth_id": str(profile.get("id")),
        }

    return {}


# ═══════════════════════════════════════════════════════════════
#  OAuth flow
# ═══════════════════════════════════════════════════════════════

@router.get("/login/{provider}")
async def oauth_login(provider: str, request: Request):
    """Redirect the user to the provider's OAuth consent screen."""
    if provider not in VALID_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Unknown provider: {provider}")

    client = oauth.create_client(provider)
    redirect_uri = request.url_for("oauth_callback", provider=provider)
    return await client.authorize_redirect(request, str(redirect_uri))


@router.get("/callback/{provider}")
async def oauth_callback(
    provider: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Handle the OAuth callback — find or create the user, set JWT cookie."""
    if provider not in VALID_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Unknown provider: {provider}")

    try:
        client = oauth.create_client(provider)
        token = await client.authorize_access_token(request)
    except OAuthError as e:
        logger.warning("OAuth callback from %s failed: %s", provider, e.error)
        raise HTTPException(status_code=400, detail=f"Authentication failed: {e.error}")

    user_info = await _get_oauth_user_info(provider, token, client)
    email = user_info.get("email")
    oauth_id = user_info.get("oauth_id")

    if not email or not oauth_id:
        raise HTTPException(
            status_code=400,
            detail="Could not retrieve your email from the provider. Please try a different sign-in method.",
        )

    # ── Find existing user by oauth_provider + oauth_id ──
    result = await db.execute(
        select(User).where(User.oauth_provider == provider, User.oauth_id == oauth_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        # Check if a user with this email already exists (different provider)
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            # Link this provider to the existing account
            user.oauth_provider = provider
            user.oauth_id = oauth_id
            if user_info.get("picture"):
                user.avatar_url = user_info["picture"]
        else:
            user = User(
                email=email,
                name=user_info.get("name") or email.split("@")[0],
                oauth_provider=provider,
                oauth_id=oauth_id,
                avatar_url=user_info.get("picture"),
            )
            db.add(user)
            logger.info("New user signed up via %s", provider)

        await db.commit()
        await db.refresh(user)

    response = RedirectResponse(url=settings.APP_URL, status_code=status.HTTP_303_SEE_OTHER)
    return set_auth_cookie(response, user.id)


# ═══════════════════════════════════════════════════════════════
#  Logout
# ═══════════════════════════════════════════════════════════════

@router.get("/logout")
async def logout():
    """Clear the auth cookie and redirect to the landing page."""
    response = RedirectResponse(url=settings.APP_URL, status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(key=COOKIE_KEY)
    return response
