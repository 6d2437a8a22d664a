"""Productivity and utilization aggregation over logged time entries."""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable

import numpy as np

from productivity_tracker import config
from productivity_tracker.schema import DailySummary, DivertedTask, Profile, TaskLog, TimeLog

_STATUS_BY_LOG_TYPE = {"work_start": "working", "break_start": "on_break"}

_TRANSITIONS = {
    "idle": ("work_start",),
    "working": ("work_end", "break_start"),
    "on_break": ("break_end",),
}


@dataclass
class DailyTotals:
    core_minutes: int
    diverted_minutes: int
    total_minutes: int


@dataclass
class TeamTrend:
    """Team figures for a single date."""

    date: date
    avg_productivity: int
    avg_utilization: int
    total_core_minutes: int
    total_diverted_minutes: int
    active_agents: int


@dataclass
class AgentStats:
    id: str
    full_name: str
    email: str
    is_active: bool
    core_minutes: int
    diverted_minutes: int
    total_minutes: int
    productivity: int
    utilization: int


@dataclass
class TeamStats:
    total_agents: int
    active_agents: int
    avg_productivity: int
    avg_utilization: int
    total_core_minutes: int
    total_diverted_minutes: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""

    return int(math.floor(value + 0.5))


def daily_totals(task_logs: Iterable[TaskLog], diverted_logs: Iterable[DivertedTask]) -> DailyTotals:
    """Sum ``time_spent`` over core and diverted entries."""

    core = sum(log.time_spent for log in task_logs)
    diverted = sum(log.time_spent for log in diverted_logs)
    return DailyTotals(core_minutes=core, diverted_minutes=diverted, total_minutes=core + diverted)


def productivity(core_minutes: int, total_minutes: int) -> int:
    """Share of logged time spent on core tasks, as a whole percentage."""

    if total_minutes <= 0:
        return 0
    return round_half_up(core_minutes / total_minutes * 100)


def utilization(total_minutes: int, target_minutes: int = config.TARGET_MINUTES) -> int:
    """Logged time against the daily target. Not clamped at 100."""

    if target_minutes <= 0:
        raise ValueError("target_minutes must be positive")
    return round_half_up(total_minutes / target_minutes * 100)


def current_status(time_logs: Iterable[TimeLog]) -> str:
    """Derive work status from the most recent status transition."""

    latest = max(time_logs, key=lambda log: log.timestamp, default=None)
    if latest is None:
        return "idle"
    return _STATUS_BY_LOG_TYPE.get(latest.log_type, "idle")


def available_transitions(status: str) -> tuple[str, ...]:
    """Log types that may be appended while in ``status``."""

    if status not in _TRANSITIONS:
        raise ValueError(f"Unknown work status '{status}'")
    return _TRANSITIONS[status]


def team_trend(summaries: Iterable[DailySummary]) -> list[TeamTrend]:
    """Group daily summaries by date into team averages, newest date first."""

    by_date: dict[date, list[DailySummary]] = defaultdict(list)
    for summary in summaries:
        by_date[summary.date].append(summary)

    trends = []
    for day, rows in by_date.items():
        trends.append(
            TeamTrend(
                date=day,
                avg_productivity=round_half_up(float(np.mean([r.productivity_percentage for r in rows]))),
                avg_utilization=round_half_up(float(np.mean([r.utilization_percentage for r in rows]))),
                total_core_minutes=sum(r.core_minutes for r in rows),
                total_diverted_minutes=sum(r.diverted_minutes for r in rows),
                active_agents=len({r.user_id for r in rows}),
            )
        )
    return sorted(trends, key=lambda trend: trend.date, reverse=True)


def agent_stats(
    profile: Profile,
    task_logs: Iterable[TaskLog],
    diverted_logs: Iterable[DivertedTask],
    target_minutes: int = config.TARGET_MINUTES,
) -> AgentStats:
    """Today's figures for one user as shown on the team overview."""

    totals = daily_totals(task_logs, diverted_logs)
    return AgentStats(
        id=profile.id,
        full_name=profile.full_name,
        email=profile.email,
        is_active=profile.is_active,
        core_minutes=totals.core_minutes,
        diverted_minutes=totals.diverted_minutes,
        total_minutes=totals.total_minutes,
        productivity=productivity(totals.core_minutes, totals.total_minutes),
        utilization=utilization(totals.total_minutes, target_minutes),
    )


def team_stats(stats: list[AgentStats]) -> TeamStats:
    """Roll per-agent figures up into team headline numbers.

    Averages cover active agents only; minute totals cover everyone.
    """

    active = [s for s in stats if s.is_active]
    if active:
        avg_productivity = round_half_up(float(np.mean([s.productivity for s in active])))
        avg_utilization = round_half_up(float(np.mean([s.utilization for s in active])))
    else:
        avg_productivity = 0
        avg_utilization = 0

    return TeamStats(
        total_agents=len(stats),
        active_agents=len(active),
        avg_productivity=avg_productivity,
        avg_utilization=avg_utilization,
        total_core_minutes=sum(s.core_minutes for s in stats),
        total_diverted_minutes=sum(s.diverted_minutes for s in stats),
    )


def summarize_day(
    user_id: str,
    day: date,
    task_logs: Iterable[TaskLog],
    diverted_logs: Iterable[DivertedTask],
    target_minutes: int = config.TARGET_MINUTES,
) -> DailySummary:
    """Build a daily summary row for one user from that day's entries."""

    totals = daily_totals(task_logs, diverted_logs)
    return DailySummary(
        date=day,
        user_id=user_id,
        core_minutes=totals.core_minutes,
        diverted_minutes=totals.diverted_minutes,
        total_minutes=totals.total_minutes,
        productivity_percentage=productivity(totals.core_minutes, totals.total_minutes),
        utilization_percentage=utilization(totals.total_minutes, target_minutes),
    )
