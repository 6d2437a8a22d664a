"""Core data schema for tracked time entries."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

ROLES = ("agent", "admin")
LOG_TYPES = ("work_start", "work_end", "break_start", "break_end")
WORK_STATUSES = ("idle", "working", "on_break")


@dataclass
class Profile:
    """User profile; ``role`` selects the dashboard variant."""

    id: str
    email: str
    full_name: str
    role: str = "agent"
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class CoreTask:
    id: str
    name: str
    allocated_time: int
    category: str


@dataclass
class TaskLog:
    """One logged instance of a core task."""

    id: str
    user_id: str
    core_task_id: str
    time_spent: int
    completed_at: datetime
    notes: Optional[str] = None


@dataclass
class DivertedTask:
    """One logged non-core activity."""

    id: str
    user_id: str
    task_type: str
    time_spent: int
    completed_at: datetime
    description: Optional[str] = None


@dataclass
class TimeLog:
    """Append-only status transition."""

    id: str
    user_id: str
    log_type: str
    timestamp: datetime


@dataclass
class DailySummary:
    date: date
    user_id: str
    core_minutes: int
    diverted_minutes: int
    total_minutes: int
    productivity_percentage: int
    utilization_percentage: int
