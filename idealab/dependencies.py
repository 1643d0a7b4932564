"""FastAPI dependencies wiring the brainwriting core to the app's publisher."""

from fastapi import Depends, Request

from idealab.config import brainwriting_rules
from idealab.database import async_session
from idealab.core.join import JoinCoordinator
from idealab.core.locks import LockManager
from idealab.core.store import SessionStore
from idealab.core.turns import TurnSequencer
from idealab.services.events import EventPublisher


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


def build_store(publisher: EventPublisher, locks: LockManager = None) -> SessionStore:
    rules = brainwriting_rules()
    locks = locks or LockManager()
    return SessionStore(rules, locks, TurnSequencer(rules, locks), publisher)


def get_store(publisher: EventPublisher = Depends(get_publisher)) -> SessionStore:
    return build_store(publisher)


def get_coordinator(store: SessionStore = Depends(get_store)) -> JoinCoordinator:
    return JoinCoordinator(store)


def get_session_factory():
    """Session factory for handlers that open short sessions of their own (WebSockets)."""
    return async_session
