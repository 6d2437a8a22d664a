import pytest

from productivity_tracker.store import Store


@pytest.fixture
def store():
    with Store() as db:
        yield db


@pytest.fixture
def seeded_store(store):
    store.insert("profiles", {"id": "alice", "email": "alice@example.com", "full_name": "Alice", "role": "agent"})
    store.insert("profiles", {"id": "bob", "email": "bob@example.com", "full_name": "Bob", "role": "agent"})
    store.insert("profiles", {"id": "root", "email": "root@example.com", "full_name": "Root", "role": "admin"})
    store.insert("core_tasks", {"id": "validation", "name": "Validation", "allocated_time": 15, "category": "review"})
    store.insert("core_tasks", {"id": "registration", "name": "Registration", "allocated_time": 30, "category": "intake"})
    return store
