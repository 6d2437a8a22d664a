"""
Centralized configuration for productivity-tracker.

Values that vary by deployment live here and can be overridden through
environment variables.
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ============================================================
# Storage
# ============================================================

DB_PATH: str = os.environ.get("TRACKER_DB_PATH", "data/tracker.db")
"""SQLite database file shared by the data store and identity provider."""

# ============================================================
# Aggregation
# ============================================================

TARGET_MINUTES: int = int(os.environ.get("TRACKER_TARGET_MINUTES", "435"))
"""Daily logged-minutes target that utilization is measured against."""

PRODUCTIVITY_GOAL: int = 70
"""Productivity percentage at or above which a day is highlighted."""

UTILIZATION_GOAL: int = 80
"""Utilization percentage at or above which a day is highlighted."""

# ============================================================
# Dashboards
# ============================================================

HISTORY_WINDOWS: tuple[int, ...] = (7, 14, 30)
"""Selectable history windows, in days."""

RECENT_LIMIT: int = int(os.environ.get("TRACKER_RECENT_LIMIT", "20"))
"""Maximum rows shown in the recent core/diverted task tables."""

DIVERTED_TASK_TYPES: tuple[str, ...] = ("Meeting", "Coaching", "Training", "Compliance Training")

# ============================================================
# Identity / routing
# ============================================================

REQUIRE_EMAIL_CONFIRMATION: bool = _env_bool("TRACKER_REQUIRE_EMAIL_CONFIRMATION", True)
"""When set, new accounts cannot sign in until their email is confirmed."""

PASSWORD_MIN_LENGTH: int = 6

LOGIN_PATH: str = "/auth/login"
DASHBOARD_PATH: str = "/dashboard"
AUTH_PREFIX: str = "/auth/"
