"""
Dashboard view models.

Each dashboard is a plain dataclass filled by an explicit loader. Nothing is
cached between loads: after a write the caller loads the view again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from productivity_tracker import config
from productivity_tracker.aggregation import (
    AgentStats,
    DailyTotals,
    TeamStats,
    TeamTrend,
    agent_stats,
    available_transitions,
    current_status,
    daily_totals,
    productivity,
    team_stats,
    team_trend,
    utilization,
)
from productivity_tracker.schema import CoreTask, DailySummary, DivertedTask, Profile
from productivity_tracker.store import Store


class NotAuthenticated(Exception):
    """No signed-in user, or the user has no profile."""


@dataclass
class RecentTaskLog:
    id: str
    completed_at: datetime
    time_spent: int
    notes: Optional[str]
    task_name: str
    category: str


@dataclass
class AgentDashboard:
    profile: Profile
    status: str
    transitions: tuple[str, ...]
    core_tasks: list[CoreTask]
    today: DailyTotals
    productivity: int
    utilization: int
    target_minutes: int
    history_days: int
    summaries: list[DailySummary] = field(default_factory=list)
    recent_task_logs: list[RecentTaskLog] = field(default_factory=list)
    recent_diverted_logs: list[DivertedTask] = field(default_factory=list)
    kind: str = "agent"


@dataclass
class HistoryRow:
    """Daily summary with the agent's name attached."""

    date: date
    user_id: str
    full_name: str
    core_minutes: int
    diverted_minutes: int
    total_minutes: int
    productivity: int
    utilization: int


@dataclass
class AdminDashboard:
    profile: Profile
    agents: list[AgentStats]
    team: TeamStats
    history_days: int
    selected_agent_id: Optional[str] = None
    history: list[HistoryRow] = field(default_factory=list)
    trends: list[TeamTrend] = field(default_factory=list)
    kind: str = "admin"


Dashboard = Union[AgentDashboard, AdminDashboard]


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    return start, end


def _history_window(history_days: int, today: date) -> tuple[date, date]:
    if history_days not in config.HISTORY_WINDOWS:
        raise ValueError(f"history_days must be one of {config.HISTORY_WINDOWS}")
    return today - timedelta(days=history_days), today


def _today() -> date:
    return datetime.now(timezone.utc).date()


def load_agent_dashboard(
    store: Store, profile: Profile, history_days: int = 7, today: Optional[date] = None
) -> AgentDashboard:
    """Fetch everything the agent dashboard shows."""

    today = today or _today()
    day_start, day_end = _day_bounds(today)
    start_date, end_date = _history_window(history_days, today)
    window_start, _ = _day_bounds(start_date)

    totals = daily_totals(
        store.task_logs(profile.id, since=day_start, until=day_end),
        store.diverted_tasks(profile.id, since=day_start, until=day_end),
    )
    latest = store.latest_time_log(profile.id)
    status = current_status([latest] if latest else [])

    core_tasks = store.core_tasks()
    catalog = {task.id: task for task in core_tasks}
    recent_tasks = []
    for log in store.task_logs(profile.id, since=window_start, descending=True, limit=config.RECENT_LIMIT):
        task = catalog.get(log.core_task_id)
        recent_tasks.append(
            RecentTaskLog(
                id=log.id,
                completed_at=log.completed_at,
                time_spent=log.time_spent,
                notes=log.notes,
                task_name=task.name if task else "Unknown task",
                category=task.category if task else "unknown",
            )
        )

    return AgentDashboard(
        profile=profile,
        status=status,
        transitions=available_transitions(status),
        core_tasks=core_tasks,
        today=totals,
        productivity=productivity(totals.core_minutes, totals.total_minutes),
        utilization=utilization(totals.total_minutes),
        target_minutes=config.TARGET_MINUTES,
        history_days=history_days,
        summaries=store.daily_summaries(profile.id, since=start_date, until=end_date, descending=True),
        recent_task_logs=recent_tasks,
        recent_diverted_logs=store.diverted_tasks(
            profile.id, since=window_start, descending=True, limit=config.RECENT_LIMIT
        ),
    )


def load_admin_dashboard(
    store: Store,
    profile: Profile,
    history_days: int = 7,
    selected_agent_id: Optional[str] = None,
    today: Optional[date] = None,
) -> AdminDashboard:
    """Fetch team overview, per-agent history and team trends."""

    today = today or _today()
    day_start, day_end = _day_bounds(today)
    start_date, end_date = _history_window(history_days, today)

    profiles = store.profiles()
    agents = [
        agent_stats(
            member,
            store.task_logs(member.id, since=day_start, until=day_end),
            store.diverted_tasks(member.id, since=day_start, until=day_end),
        )
        for member in profiles
    ]
    names = {member.id: member.full_name for member in profiles}

    summaries = store.daily_summaries(since=start_date, until=end_date, descending=True)
    history = [
        HistoryRow(
            date=s.date,
            user_id=s.user_id,
            full_name=names.get(s.user_id, "Unknown"),
            core_minutes=s.core_minutes,
            diverted_minutes=s.diverted_minutes,
            total_minutes=s.total_minutes,
            productivity=s.productivity_percentage,
            utilization=s.utilization_percentage,
        )
        for s in summaries
        if not selected_agent_id or s.user_id == selected_agent_id
    ]

    return AdminDashboard(
        profile=profile,
        agents=agents,
        team=team_stats(agents),
        history_days=history_days,
        selected_agent_id=selected_agent_id or None,
        history=history,
        trends=team_trend(summaries),
    )


def load_dashboard(
    store: Store,
    identity,
    token: Optional[str],
    history_days: int = 7,
    selected_agent_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Dashboard:
    """Resolve the session and load the dashboard variant for the user's role."""

    user = identity.get_current_user(token)
    if user is None:
        raise NotAuthenticated("Sign in to view the dashboard")
    profile = store.profile(user.id)
    if profile is None:
        raise NotAuthenticated("No profile for the signed-in user")

    if profile.role == "admin":
        return load_admin_dashboard(store, profile, history_days, selected_agent_id, today)
    return load_agent_dashboard(store, profile, history_days, today)
