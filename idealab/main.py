"""
Idea Lab — FastAPI application entry-point.

Run with:
    uvicorn idealab.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from idealab.config import settings
from idealab.core.exceptions import DomainRejection, StoreUnavailable
from idealab.database import Base, engine
from idealab.services.events import EventPublisher
from idealab.services.pubsub import create_transport

# ── Import models so create_all sees every table ──
import idealab.models  # noqa: F401

# ── Import routers ──
from idealab.routers import auth, brainwritings, events, realtime, users

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup, close the event transport on shutdown ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    transport = app.state.publisher.transport
    try:
        await transport.ping()
    except Exception as e:
        logger.warning("Event transport unreachable at startup, events will be dropped: %s", e)

    yield

    await transport.close()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Idea Lab — collaborative brainwriting sessions.",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.publisher = EventPublisher(create_transport(settings.REDIS_URL))

# ── Session middleware (required for OAuth state) ──
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY, https_only=not settings.DEBUG)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))


# ── Error responses ──
def _make_error_response(code: str, message: str, details: dict, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details}},
    )


@app.exception_handler(DomainRejection)
async def domain_rejection_handler(request: Request, exc: DomainRejection) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
    return _make_error_response(exc.code, exc.message, exc.details, exc.status_code)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("%s %s failed: store unavailable", request.method, request.url.path)
    return _make_error_response(exc.code, exc.message, {"retryable": exc.retryable}, exc.status_code)


# ── Register API routers ──
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(brainwritings.router)
app.include_router(events.router)
app.include_router(realtime.router)


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME, "environment": settings.ENVIRONMENT}


if settings.ENVIRONMENT != "production":
    from idealab.routers.auth import set_auth_cookie

    @app.get("/mock-login/{user_id}")
    def mock_login(user_id: int):
        resp = RedirectResponse(url="/api/users/me", status_code=303)
        return set_auth_cookie(resp, user_id)
