"""Streamlit UI for productivity-tracker."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from productivity_tracker import actions, config
from productivity_tracker.aggregation import AgentStats, TeamTrend
from productivity_tracker.identity import AuthError, IdentityProvider, login_error_message
from productivity_tracker.middleware import guard_request
from productivity_tracker.store import Store, StoreError
from productivity_tracker.views import AdminDashboard, AgentDashboard, HistoryRow, NotAuthenticated, load_dashboard

logger = logging.getLogger(__name__)

STATUS_LABELS = {"idle": "Idle", "working": "Working", "on_break": "On Break"}
TRANSITION_LABELS = {
    "work_start": "Start Work",
    "work_end": "End Work",
    "break_start": "Start Break",
    "break_end": "End Break",
}


def _fmt_date(value) -> str:
    return value.strftime("%b %d, %Y")


def _fmt_time(value: datetime) -> str:
    return value.strftime("%I:%M %p")


def _pct(value: int, goal: int) -> str:
    marker = " ✓" if value >= goal else ""
    return f"{value}%{marker}"


def summary_rows(dashboard: AgentDashboard) -> list[dict[str, Any]]:
    return [
        {
            "Date": _fmt_date(s.date),
            "Core (min)": s.core_minutes,
            "Diverted (min)": s.diverted_minutes,
            "Total (min)": s.total_minutes,
            "Productivity": _pct(s.productivity_percentage, config.PRODUCTIVITY_GOAL),
            "Utilization": _pct(s.utilization_percentage, config.UTILIZATION_GOAL),
        }
        for s in dashboard.summaries
    ]


def recent_task_rows(dashboard: AgentDashboard) -> list[dict[str, Any]]:
    return [
        {
            "Date & Time": f"{_fmt_date(log.completed_at)} {_fmt_time(log.completed_at)}",
            "Task": log.task_name,
            "Category": log.category,
            "Time (min)": log.time_spent,
            "Notes": log.notes or "-",
        }
        for log in dashboard.recent_task_logs
    ]


def recent_diverted_rows(dashboard: AgentDashboard) -> list[dict[str, Any]]:
    return [
        {
            "Date & Time": f"{_fmt_date(log.completed_at)} {_fmt_time(log.completed_at)}",
            "Type": log.task_type,
            "Time (min)": log.time_spent,
            "Description": log.description or "-",
        }
        for log in dashboard.recent_diverted_logs
    ]


def agent_rows(agents: list[AgentStats]) -> list[dict[str, Any]]:
    return [
        {
            "Name": agent.full_name,
            "Email": agent.email,
            "Status": "Active" if agent.is_active else "Inactive",
            "Core (min)": agent.core_minutes,
            "Diverted (min)": agent.diverted_minutes,
            "Total (min)": agent.total_minutes,
            "Productivity": f"{agent.productivity}%",
            "Utilization": f"{agent.utilization}%",
        }
        for agent in agents
    ]


def trend_rows(trends: list[TeamTrend]) -> list[dict[str, Any]]:
    return [
        {
            "Date": _fmt_date(trend.date),
            "Avg Productivity": _pct(trend.avg_productivity, config.PRODUCTIVITY_GOAL),
            "Avg Utilization": _pct(trend.avg_utilization, config.UTILIZATION_GOAL),
            "Core (min)": trend.total_core_minutes,
            "Diverted (min)": trend.total_diverted_minutes,
            "Agents": trend.active_agents,
        }
        for trend in trends
    ]


def history_rows(history: list[HistoryRow], include_agent: bool) -> list[dict[str, Any]]:
    rows = []
    for row in history:
        entry: dict[str, Any] = {"Date": _fmt_date(row.date)}
        if include_agent:
            entry["Agent"] = row.full_name
        entry.update(
            {
                "Core (min)": row.core_minutes,
                "Diverted (min)": row.diverted_minutes,
                "Total (min)": row.total_minutes,
                "Productivity": _pct(row.productivity, config.PRODUCTIVITY_GOAL),
                "Utilization": _pct(row.utilization, config.UTILIZATION_GOAL),
            }
        )
        rows.append(entry)
    return rows


def _table(st, rows: list[dict[str, Any]], empty_message: str) -> None:
    if rows:
        st.table(rows)
    else:
        st.info(empty_message)


def toggle_agent(st, store: Store, admin, agent: AgentStats) -> bool:
    """Flip an agent's active flag, reporting failures on the page."""

    try:
        actions.toggle_user_status(store, admin, agent.id)
    except (StoreError, ValueError):
        logger.exception("Failed to toggle %s", agent.id)
        st.error(f"Could not update {agent.full_name}.")
        return False
    return True


def _open_store() -> Store:
    return Store.open(config.DB_PATH)


def _render_login(st, identity: IdentityProvider) -> None:
    st.title("Login")
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login", type="primary")
    if submitted:
        try:
            st.session_state["token"] = identity.sign_in(email, password)
        except AuthError as exc:
            st.error(login_error_message(exc))
            return
        st.session_state["path"] = config.DASHBOARD_PATH
        st.rerun()
    if st.button("Don't have an account? Sign up"):
        st.session_state["path"] = "/auth/sign-up"
        st.rerun()


def _render_sign_up(st, identity: IdentityProvider) -> None:
    st.title("Create Account")
    st.caption("Sign up to start tracking productivity")
    with st.form("sign_up"):
        full_name = st.text_input("Full Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        role = st.selectbox("Role", options=["agent", "admin"], format_func=str.title)
        submitted = st.form_submit_button("Sign up", type="primary")

    if submitted:
        try:
            result = identity.sign_up(email, password, full_name, role)
        except AuthError as exc:
            st.error(login_error_message(exc))
            return
        if result.session_token is None:
            st.session_state["pending_email"] = result.user.email
        else:
            st.session_state["token"] = result.session_token
            st.session_state["path"] = config.DASHBOARD_PATH
            st.rerun()

    pending = st.session_state.get("pending_email")
    if pending:
        st.info(f"We've sent a confirmation link to {pending}. Check your spam folder if you don't see it.")
        if st.button("Resend confirmation email"):
            try:
                identity.resend_confirmation(pending)
                st.success("Confirmation email resent.")
            except AuthError as exc:
                st.error(str(exc) or "Failed to resend email")
    if st.button("Already have an account? Login"):
        st.session_state["path"] = config.LOGIN_PATH
        st.rerun()


def _history_select(st, key: str) -> int:
    return st.selectbox(
        "History",
        options=list(config.HISTORY_WINDOWS),
        format_func=lambda days: f"Last {days} days",
        key=key,
    )


def _render_agent(st, store: Store, dashboard: AgentDashboard) -> None:
    profile = dashboard.profile
    st.title("Agent Dashboard")
    st.caption(f"Welcome back, {profile.full_name}")

    st.subheader("Current Status")
    cols = st.columns(1 + len(dashboard.transitions))
    cols[0].metric("Status", STATUS_LABELS[dashboard.status])
    for col, log_type in zip(cols[1:], dashboard.transitions):
        if col.button(TRANSITION_LABELS[log_type], key=f"status_{log_type}"):
            try:
                actions.change_status(store, profile, log_type)
            except (StoreError, ValueError):
                st.error("Could not update your status. Please try again.")
                return
            st.rerun()

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Core Tasks", f"{dashboard.today.core_minutes} min")
    c2.metric("Diverted Tasks", f"{dashboard.today.diverted_minutes} min")
    c3.metric("Productivity", f"{dashboard.productivity}%")
    c4.metric("Utilization", f"{dashboard.utilization}%")
    c4.caption(f"{dashboard.today.total_minutes} / {dashboard.target_minutes} min")

    core_tab, diverted_tab, history_tab = st.tabs(["Log Core Task", "Log Diverted Task", "History"])

    with core_tab, st.form("core_task", clear_on_submit=True):
        catalog = {task.id: task for task in dashboard.core_tasks}
        task_id = st.selectbox(
            "Task",
            options=list(catalog),
            format_func=lambda key: f"{catalog[key].name} ({catalog[key].allocated_time} min)",
        )
        minutes = st.number_input("Time Spent (minutes)", min_value=1, value=15, step=1)
        notes = st.text_area("Notes (optional)")
        if st.form_submit_button("Log Task", type="primary"):
            try:
                actions.log_core_task(store, profile, task_id, int(minutes), notes)
            except (StoreError, ValueError):
                st.error("Could not log the task.")
            else:
                st.rerun()

    with diverted_tab, st.form("diverted_task", clear_on_submit=True):
        task_type = st.selectbox("Task Type", options=list(config.DIVERTED_TASK_TYPES))
        minutes = st.number_input("Time Spent (minutes)", min_value=1, value=30, step=1)
        description = st.text_area("Description (optional)")
        if st.form_submit_button("Log Task", type="primary"):
            try:
                actions.log_diverted_task(store, profile, task_type, int(minutes), description)
            except (StoreError, ValueError):
                st.error("Could not log the task.")
            else:
                st.rerun()

    with history_tab:
        _history_select(st, "history_days")
        st.write("**Performance History**")
        _table(st, summary_rows(dashboard), "No data available for this period")
        st.write("**Recent Core Tasks**")
        _table(st, recent_task_rows(dashboard), "No core tasks logged yet")
        st.write("**Recent Diverted Tasks**")
        _table(st, recent_diverted_rows(dashboard), "No diverted tasks logged yet")


def _render_admin(st, store: Store, identity: IdentityProvider, dashboard: AdminDashboard) -> None:
    profile = dashboard.profile
    team = dashboard.team
    st.title("Admin Dashboard")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active Agents", f"{team.active_agents} / {team.total_agents}")
    c2.metric("Avg Productivity", f"{team.avg_productivity}%")
    c3.metric("Avg Utilization", f"{team.avg_utilization}%")
    c4.metric("Total Time Today", f"{team.total_core_minutes + team.total_diverted_minutes} min")
    c4.caption(f"Core: {team.total_core_minutes} | Diverted: {team.total_diverted_minutes}")

    overview_tab, users_tab, reports_tab = st.tabs(["Team Overview", "User Management", "Reports"])

    with overview_tab:
        st.table(agent_rows(dashboard.agents))

    with users_tab:
        with st.expander("Create User"), st.form("create_user", clear_on_submit=True):
            full_name = st.text_input("Full Name")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            role = st.selectbox("Role", options=["agent", "admin"], format_func=str.title)
            if st.form_submit_button("Create User", type="primary"):
                try:
                    actions.create_user(identity, profile, email, password, full_name, role)
                except AuthError as exc:
                    logger.error("Error creating user: %s", exc)
                    st.error(str(exc))
                else:
                    st.rerun()

        for agent in dashboard.agents:
            name_col, status_col, action_col = st.columns([3, 1, 1])
            name_col.write(f"{agent.full_name} ({agent.email})")
            status_col.write("Active" if agent.is_active else "Inactive")
            label = "Deactivate" if agent.is_active else "Activate"
            if action_col.button(label, key=f"toggle_{agent.id}") and toggle_agent(st, store, profile, agent):
                st.rerun()

    with reports_tab:
        names = {agent.id: agent.full_name for agent in dashboard.agents}
        st.selectbox(
            "Agent",
            options=["", *names],
            format_func=lambda key: names.get(key, "All Agents"),
            key="selected_agent_id",
        )
        _history_select(st, "history_days")
        if not dashboard.selected_agent_id:
            st.write("**Team Trends**")
            _table(st, trend_rows(dashboard.trends), "No data available for this period")
        st.write("**Individual Performance**" if dashboard.selected_agent_id else "**All Agents Performance**")
        rows = history_rows(dashboard.history, include_agent=not dashboard.selected_agent_id)
        _table(st, rows, "No data available for this period")


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Productivity Tracker", layout="wide")
    store = st.cache_resource(_open_store)()
    identity = IdentityProvider(store)

    st.session_state.setdefault("path", config.DASHBOARD_PATH)
    st.session_state.setdefault("history_days", config.HISTORY_WINDOWS[0])
    st.session_state.setdefault("selected_agent_id", "")
    token = st.session_state.get("token")

    decision = guard_request(st.session_state["path"], token, identity)
    if not decision.allowed:
        st.session_state["path"] = decision.redirect_to
        st.rerun()

    path = st.session_state["path"]
    if path == "/auth/sign-up":
        _render_sign_up(st, identity)
        return
    if path.startswith(config.AUTH_PREFIX) or path == "/":
        _render_login(st, identity)
        return

    try:
        dashboard = load_dashboard(
            store,
            identity,
            token,
            history_days=st.session_state["history_days"],
            selected_agent_id=st.session_state["selected_agent_id"] or None,
        )
    except NotAuthenticated:
        st.session_state["path"] = config.LOGIN_PATH
        st.rerun()
        return

    with st.sidebar:
        st.write(dashboard.profile.email)
        if st.button("Logout"):
            identity.sign_out(token)
            st.session_state.pop("token", None)
            st.session_state["path"] = config.LOGIN_PATH
            st.rerun()

    if isinstance(dashboard, AdminDashboard):
        _render_admin(st, store, identity, dashboard)
    else:
        _render_agent(st, store, dashboard)


if __name__ == "__main__":
    main()
