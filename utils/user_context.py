"""Propagate the authenticated actor through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum

from pydantic import BaseModel


class ActorRole(str, Enum):
    """What the authenticated actor is allowed to see and do."""

    SELLER = "seller"
    BUYER = "buyer"
    ADMIN = "admin"


class Actor(BaseModel):
    """Authenticated identity. For sellers and buyers, id is their party id."""

    id: int
    role: ActorRole

    model_config = {"frozen": True}


_current_actor: ContextVar[Actor | None] = ContextVar("current_actor", default=None)


def get_current_actor() -> Actor:
    """
    Get current actor from context.

    Raises RuntimeError if no actor is set.
    This is fail-fast behavior - if you're in a code path that
    requires an actor and it's not set, that's a bug.
    """
    actor = _current_actor.get()
    if actor is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "actor-scoped code outside of an authenticated request."
        )
    return actor


def get_current_actor_id() -> int | None:
    """Current actor id, or None outside an authenticated request."""
    actor = _current_actor.get()
    return None if actor is None else actor.id


def set_current_actor(actor: Actor) -> None:
    """
    Set current actor in context.

    Called by the request layer after authenticating.
    """
    _current_actor.set(actor)


def clear_current_actor() -> None:
    """
    Clear actor context.

    Must be called in finally block to prevent context leakage.
    """
    _current_actor.set(None)


@contextmanager
def user_context(actor: Actor):
    """
    Context manager for temporarily setting the actor.

    Example:
        with user_context(Actor(id=1, role=ActorRole.SELLER)):
            invoice = invoice_service.create(data)
    """
    previous = _current_actor.get()
    set_current_actor(actor)
    try:
        yield actor
    finally:
        if previous is None:
            clear_current_actor()
        else:
            set_current_actor(previous)
