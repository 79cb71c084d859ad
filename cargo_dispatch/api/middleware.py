"""Rate limiting shared by every router (slowapi, keyed by client address)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from cargo_dispatch.config import settings

limiter = Limiter(key_func=get_remote_address)

_rate_limit = settings.rate_limit


def configure_rate_limit(value: str) -> None:
    """Set the per-route limit; ``create_app`` calls this with its settings."""
    global _rate_limit
    _rate_limit = value


def current_rate_limit() -> str:
    # slowapi re-evaluates callable limits on every request
    return _rate_limit
