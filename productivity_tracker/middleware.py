"""Route guard deciding whether a request passes or is redirected."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from productivity_tracker import config

logger = logging.getLogger(__name__)


@dataclass
class RouteDecision:
    allowed: bool
    redirect_to: Optional[str] = None


def is_public_path(path: str) -> bool:
    return path == "/" or path.startswith(config.AUTH_PREFIX)


def guard_request(path: str, token: Optional[str], identity) -> RouteDecision:
    """Decide what to do with a request for ``path``.

    Root and auth pages are reachable without a session; signed-in users are
    sent from auth pages to the dashboard. Every other path requires a user,
    and an identity lookup failure is treated as no user.
    """

    try:
        user = identity.get_current_user(token) if token else None
    except Exception:  # noqa: BLE001
        logger.warning("Identity check failed for %s, redirecting to login", path, exc_info=True)
        if is_public_path(path):
            return RouteDecision(allowed=True)
        return RouteDecision(allowed=False, redirect_to=config.LOGIN_PATH)

    if path.startswith(config.AUTH_PREFIX):
        if user is not None:
            return RouteDecision(allowed=False, redirect_to=config.DASHBOARD_PATH)
        return RouteDecision(allowed=True)
    if path == "/":
        return RouteDecision(allowed=True)
    if user is None:
        return RouteDecision(allowed=False, redirect_to=config.LOGIN_PATH)
    return RouteDecision(allowed=True)
