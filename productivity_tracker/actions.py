"""Write actions issued from the dashboards."""

from __future__ import annotations

import logging
from typing import Optional

from productivity_tracker.aggregation import available_transitions, current_status
from productivity_tracker.identity import IdentityProvider, SignUpResult
from productivity_tracker.schema import LOG_TYPES, Profile
from productivity_tracker.store import Store, StoreError

logger = logging.getLogger(__name__)


def _minutes(value, field: str = "time_spent") -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field} must be a whole number of minutes")
    try:
        minutes = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be a whole number of minutes") from exc
    if minutes < 1:
        raise ValueError(f"{field} must be at least 1 minute")
    return minutes


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_admin(profile: Profile) -> None:
    if not profile.is_admin:
        raise PermissionError(f"{profile.email} is not an admin")


def _write(store: Store, table: str, row: dict) -> dict:
    try:
        return store.insert(table, row)
    except StoreError:
        logger.exception("Failed to write %s row for user %s", table, row.get("user_id"))
        raise


def log_core_task(
    store: Store, profile: Profile, core_task_id: str, time_spent, notes: Optional[str] = None
) -> dict:
    """Record time spent on a catalog task."""

    if not core_task_id:
        raise ValueError("A core task must be selected")
    row = {
        "user_id": profile.id,
        "core_task_id": core_task_id,
        "time_spent": _minutes(time_spent),
        "notes": _optional_text(notes),
    }
    return _write(store, "task_logs", row)


def log_diverted_task(
    store: Store, profile: Profile, task_type: str, time_spent, description: Optional[str] = None
) -> dict:
    """Record time spent on a non-core activity."""

    task_type = (task_type or "").strip()
    if not task_type:
        raise ValueError("A diverted task type must be selected")
    row = {
        "user_id": profile.id,
        "task_type": task_type,
        "time_spent": _minutes(time_spent),
        "description": _optional_text(description),
    }
    return _write(store, "diverted_tasks", row)


def change_status(store: Store, profile: Profile, log_type: str) -> dict:
    """Append a status transition offered for the user's current status."""

    if log_type not in LOG_TYPES:
        raise ValueError(f"Unknown log type '{log_type}'")
    latest = store.latest_time_log(profile.id)
    status = current_status([latest] if latest else [])
    if log_type not in available_transitions(status):
        raise ValueError(f"Cannot record {log_type} while {status}")
    return _write(store, "time_logs", {"user_id": profile.id, "log_type": log_type})


def create_user(
    identity: IdentityProvider, admin: Profile, email: str, password: str, full_name: str, role: str = "agent"
) -> SignUpResult:
    """Admin-only account creation."""

    _require_admin(admin)
    result = identity.sign_up(email, password, full_name, role)
    logger.info("%s created user %s", admin.email, result.user.email)
    return result


def toggle_user_status(store: Store, admin: Profile, user_id: str) -> bool:
    """Flip a profile's ``is_active`` flag. Returns the new value."""

    _require_admin(admin)
    target = store.profile(user_id)
    if target is None:
        raise ValueError(f"Unknown user '{user_id}'")
    new_status = not target.is_active
    store.update("profiles", user_id, {"is_active": new_status})
    logger.info("%s set %s active=%s", admin.email, target.email, new_status)
    return new_status
