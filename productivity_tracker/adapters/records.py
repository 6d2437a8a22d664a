"""Row validation shared by the CSV and JSON adapters."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

from productivity_tracker.aggregation import productivity, utilization
from productivity_tracker.schema import LOG_TYPES, DailySummary, DivertedTask, TaskLog, TimeLog
from productivity_tracker.store import parse_timestamp

_REQUIRED_FIELDS = {
    "task_logs": ("user_id", "core_task_id", "time_spent", "completed_at"),
    "diverted_tasks": ("user_id", "task_type", "time_spent", "completed_at"),
    "time_logs": ("user_id", "log_type", "timestamp"),
    "daily_summaries": ("date", "user_id", "core_minutes", "diverted_minutes"),
}

KINDS = tuple(_REQUIRED_FIELDS)


def _present(value) -> bool:
    return value not in (None, "")


def _int(row: dict, field: str, label: str) -> int:
    try:
        value = int(row[field])
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{label}: invalid {field}") from exc
    if value < 0:
        raise ValueError(f"{label}: {field} must not be negative")
    return value


def _timestamp(row: dict, field: str, label: str):
    try:
        return parse_timestamp(str(row[field]).strip())
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{label}: malformed {field}") from exc


def _text(row: dict, field: str):
    raw = row.get(field)
    return str(raw).strip() if _present(raw) else None


def build_record(kind: str, row: dict, label: str):
    """Validate ``row`` and return the schema record for ``kind``."""

    if kind not in _REQUIRED_FIELDS:
        raise ValueError(f"Unsupported record kind '{kind}', expected one of {KINDS}")
    missing = [field for field in _REQUIRED_FIELDS[kind] if not _present(row.get(field))]
    if missing:
        raise ValueError(f"{label}: missing required fields {missing}")

    row_id = _text(row, "id") or uuid4().hex
    user_id = str(row["user_id"]).strip()

    if kind == "task_logs":
        return TaskLog(
            id=row_id,
            user_id=user_id,
            core_task_id=str(row["core_task_id"]).strip(),
            time_spent=_int(row, "time_spent", label),
            completed_at=_timestamp(row, "completed_at", label),
            notes=_text(row, "notes"),
        )

    if kind == "diverted_tasks":
        return DivertedTask(
            id=row_id,
            user_id=user_id,
            task_type=str(row["task_type"]).strip(),
            time_spent=_int(row, "time_spent", label),
            completed_at=_timestamp(row, "completed_at", label),
            description=_text(row, "description"),
        )

    if kind == "time_logs":
        log_type = str(row["log_type"]).strip()
        if log_type not in LOG_TYPES:
            raise ValueError(f"{label}: invalid log_type '{log_type}'")
        return TimeLog(id=row_id, user_id=user_id, log_type=log_type, timestamp=_timestamp(row, "timestamp", label))

    try:
        day = date.fromisoformat(str(row["date"]).strip())
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{label}: malformed date") from exc

    core = _int(row, "core_minutes", label)
    diverted = _int(row, "diverted_minutes", label)
    total = core + diverted
    if _present(row.get("total_minutes")) and _int(row, "total_minutes", label) != total:
        raise ValueError(f"{label}: total_minutes does not equal core_minutes + diverted_minutes")

    return DailySummary(
        date=day,
        user_id=user_id,
        core_minutes=core,
        diverted_minutes=diverted,
        total_minutes=total,
        productivity_percentage=(
            _int(row, "productivity_percentage", label)
            if _present(row.get("productivity_percentage"))
            else productivity(core, total)
        ),
        utilization_percentage=(
            _int(row, "utilization_percentage", label)
            if _present(row.get("utilization_percentage"))
            else utilization(total)
        ),
    )
