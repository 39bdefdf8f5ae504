"""Authorization gate: session resolution for inbound requests."""

from iridium.auth.session import (
    CookieSessionResolver,
    SessionResolver,
    SessionStore,
    User,
    require_user,
)

__all__ = ["CookieSessionResolver", "SessionResolver", "SessionStore", "User", "require_user"]
