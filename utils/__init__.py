"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_local, business_today
from utils.user_context import (
    Actor,
    ActorRole,
    get_current_actor,
    get_current_actor_id,
    set_current_actor,
    clear_current_actor,
    user_context,
)
