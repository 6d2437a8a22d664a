from datetime import date

import pytest

from helpers import at
from productivity_tracker.aggregation import (
    agent_stats,
    available_transitions,
    current_status,
    daily_totals,
    productivity,
    round_half_up,
    summarize_day,
    team_stats,
    team_trend,
    utilization,
)
from productivity_tracker.schema import DailySummary, DivertedTask, Profile, TaskLog, TimeLog


def task(minutes, log_id="t"):
    return TaskLog(log_id, "alice", "validation", minutes, at(6, 9))


def diverted(minutes, log_id="d"):
    return DivertedTask(log_id, "alice", "Meeting", minutes, at(6, 10))


def summary(day, user_id, core, other, prod, util):
    return DailySummary(date(2025, 1, day), user_id, core, other, core + other, prod, util)


def test_daily_totals_scenario():
    totals = daily_totals([task(120), task(180)], [diverted(90), diverted(45)])
    assert totals.core_minutes == 300
    assert totals.diverted_minutes == 135
    assert totals.total_minutes == 435
    assert productivity(totals.core_minutes, totals.total_minutes) == 69
    assert utilization(totals.total_minutes) == 100


def test_daily_totals_empty_and_order_independent():
    assert daily_totals([], []).total_minutes == 0
    logs = [task(5, "a"), task(10, "b"), task(20, "c")]
    assert daily_totals(logs, []) == daily_totals(list(reversed(logs)), [])


def test_productivity_zero_total_and_bounds():
    assert productivity(0, 0) == 0
    assert utilization(0) == 0
    for core, other in [(0, 10), (10, 0), (1, 2), (299, 1)]:
        assert 0 <= productivity(core, core + other) <= 100


def test_utilization_is_linear_and_unclamped():
    assert utilization(435) == 100
    assert utilization(870) == 200
    assert utilization(480) == 110


def test_round_half_up():
    assert round_half_up(74.5) == 75
    assert round_half_up(0.5) == 1
    assert round_half_up(68.4) == 68


def test_current_status_mapping():
    assert current_status([]) == "idle"
    logs = [TimeLog("1", "alice", "work_start", at(6, 9)), TimeLog("2", "alice", "break_start", at(6, 11))]
    assert current_status(logs) == "on_break"
    assert current_status(list(reversed(logs))) == "on_break"
    logs.append(TimeLog("3", "alice", "work_end", at(6, 17)))
    assert current_status(logs) == "idle"
    assert current_status([TimeLog("4", "alice", "break_end", at(6, 12))]) == "idle"


def test_available_transitions():
    assert available_transitions("idle") == ("work_start",)
    assert available_transitions("working") == ("work_end", "break_start")
    assert available_transitions("on_break") == ("break_end",)
    with pytest.raises(ValueError):
        available_transitions("asleep")


def test_team_trend_groups_by_date():
    rows = [
        summary(6, "alice", 300, 135, 69, 100),
        summary(6, "bob", 240, 60, 80, 69),
        summary(8, "alice", 420, 60, 88, 110),
    ]
    trends = team_trend(rows)
    assert [t.date for t in trends] == [date(2025, 1, 8), date(2025, 1, 6)]
    day = trends[1]
    assert day.avg_productivity == 75
    assert day.avg_utilization == 85
    assert day.total_core_minutes == 540
    assert day.total_diverted_minutes == 195
    assert day.active_agents == 2
    assert team_trend([]) == []


def test_team_stats_averages_active_agents_only():
    alice = agent_stats(Profile("alice", "a@x", "Alice"), [task(300)], [diverted(135)])
    bob = agent_stats(Profile("bob", "b@x", "Bob", is_active=False), [task(100)], [])
    stats = team_stats([alice, bob])
    assert stats.total_agents == 2
    assert stats.active_agents == 1
    assert stats.avg_productivity == 69
    assert stats.avg_utilization == 100
    assert stats.total_core_minutes == 400
    assert stats.total_diverted_minutes == 135

    empty = team_stats([bob])
    assert empty.avg_productivity == 0
    assert empty.avg_utilization == 0


def test_summarize_day_invariants():
    result = summarize_day("alice", date(2025, 1, 6), [task(300)], [diverted(135)])
    assert result.total_minutes == result.core_minutes + result.diverted_minutes
    assert result.productivity_percentage == 69
    assert result.utilization_percentage == 100
