import pytest

from productivity_tracker import actions
from productivity_tracker.identity import IdentityProvider


def test_log_core_task(seeded_store):
    alice = seeded_store.profile("alice")
    row = actions.log_core_task(seeded_store, alice, "validation", "25", notes="  ")
    assert row["time_spent"] == 25
    [log] = seeded_store.task_logs("alice")
    assert log.notes is None
    assert log.core_task_id == "validation"


@pytest.mark.parametrize("minutes", [0, -5, "abc", 2.5, None])
def test_log_core_task_rejects_bad_minutes(seeded_store, minutes):
    alice = seeded_store.profile("alice")
    with pytest.raises(ValueError):
        actions.log_core_task(seeded_store, alice, "validation", minutes)


def test_log_diverted_task(seeded_store):
    bob = seeded_store.profile("bob")
    actions.log_diverted_task(seeded_store, bob, "Meeting", 30, description="weekly sync")
    [log] = seeded_store.diverted_tasks("bob")
    assert log.description == "weekly sync"
    with pytest.raises(ValueError):
        actions.log_diverted_task(seeded_store, bob, " ", 30)


def test_change_status_follows_offered_transitions(seeded_store):
    alice = seeded_store.profile("alice")
    with pytest.raises(ValueError):
        actions.change_status(seeded_store, alice, "break_start")
    actions.change_status(seeded_store, alice, "work_start")
    actions.change_status(seeded_store, alice, "break_start")
    with pytest.raises(ValueError):
        actions.change_status(seeded_store, alice, "work_end")
    with pytest.raises(ValueError):
        actions.change_status(seeded_store, alice, "nap")
    assert seeded_store.latest_time_log("alice").log_type == "break_start"


def test_admin_only_actions(seeded_store):
    admin = seeded_store.profile("root")
    agent = seeded_store.profile("alice")
    identity = IdentityProvider(seeded_store, require_confirmation=False)

    with pytest.raises(PermissionError):
        actions.toggle_user_status(seeded_store, agent, "bob")
    with pytest.raises(PermissionError):
        actions.create_user(identity, agent, "c@example.com", "secret1", "Carol")

    assert actions.toggle_user_status(seeded_store, admin, "bob") is False
    assert actions.toggle_user_status(seeded_store, admin, "bob") is True
    with pytest.raises(ValueError):
        actions.toggle_user_status(seeded_store, admin, "ghost")

    result = actions.create_user(identity, admin, "c@example.com", "secret1", "Carol")
    assert seeded_store.profile(result.user.id).full_name == "Carol"
