from datetime import date

import pytest

from helpers import at
from productivity_tracker.identity import IdentityProvider
from productivity_tracker.schema import DailySummary
from productivity_tracker.views import AdminDashboard, AgentDashboard, NotAuthenticated, load_dashboard

TODAY = date(2025, 1, 6)


@pytest.fixture
def populated(seeded_store):
    store = seeded_store
    for user_id, task_id, minutes, when in [
        ("alice", "validation", 120, at(6, 9)),
        ("alice", "registration", 180, at(6, 13)),
        ("alice", "validation", 60, at(5, 9)),
        ("bob", "validation", 240, at(6, 11)),
    ]:
        store.insert(
            "task_logs", {"user_id": user_id, "core_task_id": task_id, "time_spent": minutes, "completed_at": when}
        )
    for minutes, when in [(90, at(6, 10)), (45, at(6, 15))]:
        store.insert(
            "diverted_tasks", {"user_id": "alice", "task_type": "Meeting", "time_spent": minutes, "completed_at": when}
        )
    store.insert("time_logs", {"user_id": "alice", "log_type": "work_start", "timestamp": at(6, 8)})
    store.insert("time_logs", {"user_id": "alice", "log_type": "break_start", "timestamp": at(6, 12)})
    store.upsert_daily_summary(DailySummary(date(2025, 1, 5), "alice", 300, 135, 435, 69, 100))
    store.upsert_daily_summary(DailySummary(date(2025, 1, 5), "bob", 240, 60, 300, 80, 69))
    store.upsert_daily_summary(DailySummary(date(2024, 12, 1), "bob", 10, 0, 10, 100, 2))
    return store


def token_for(store, profile_id):
    store.insert("sessions", {"id": f"token-{profile_id}", "user_id": profile_id})
    return f"token-{profile_id}"


def test_agent_dashboard(populated):
    identity = IdentityProvider(populated)
    view = load_dashboard(populated, identity, token_for(populated, "alice"), today=TODAY)
    assert isinstance(view, AgentDashboard)
    assert view.kind == "agent"
    assert view.status == "on_break"
    assert view.transitions == ("break_end",)
    assert view.today.core_minutes == 300
    assert view.today.diverted_minutes == 135
    assert view.productivity == 69
    assert view.utilization == 100
    assert [s.date for s in view.summaries] == [date(2025, 1, 5)]
    assert [log.time_spent for log in view.recent_task_logs] == [180, 120, 60]
    assert view.recent_task_logs[0].task_name == "Registration"
    assert [log.time_spent for log in view.recent_diverted_logs] == [45, 90]


def test_admin_dashboard(populated):
    identity = IdentityProvider(populated)
    view = load_dashboard(populated, identity, token_for(populated, "root"), today=TODAY)
    assert isinstance(view, AdminDashboard)
    assert view.kind == "admin"
    assert [a.full_name for a in view.agents] == ["Alice", "Bob", "Root"]
    assert view.team.total_agents == 3
    assert view.team.total_core_minutes == 540
    assert len(view.history) == 2
    assert {row.full_name for row in view.history} == {"Alice", "Bob"}
    [trend] = view.trends
    assert trend.avg_productivity == 75
    assert trend.active_agents == 2


def test_admin_dashboard_agent_filter(populated):
    identity = IdentityProvider(populated)
    view = load_dashboard(
        populated, identity, token_for(populated, "root"), history_days=30, selected_agent_id="bob", today=TODAY
    )
    assert {row.user_id for row in view.history} == {"bob"}
    assert len(view.history) == 1
    assert len(view.trends) == 1


def test_dashboard_requires_session(populated):
    identity = IdentityProvider(populated)
    with pytest.raises(NotAuthenticated):
        load_dashboard(populated, identity, None, today=TODAY)
    with pytest.raises(NotAuthenticated):
        load_dashboard(populated, identity, "stale-token", today=TODAY)


def test_history_window_must_be_offered(populated):
    identity = IdentityProvider(populated)
    with pytest.raises(ValueError):
        load_dashboard(populated, identity, token_for(populated, "alice"), history_days=9, today=TODAY)
