from datetime import datetime, timedelta

import pytest

from mane.engine.sessions import SessionStore
from mane.tools.base import FileAction, FileActionType


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def make_actions(n=2):
    return [
        FileAction(
            id=f"action_{i}",
            type=FileActionType.DELETE,
            description=f"Delete {i}",
            source_path=f"/tmp/{i}.txt",
        )
        for i in range(n)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=600, clock=clock)


def test_store_and_get(store):
    actions = make_actions()
    session_id = store.store(actions)

    pending = store.get(session_id)

    assert session_id.startswith("session_")
    assert pending.actions == actions
    assert pending.expires_at - pending.created_at == timedelta(seconds=600)
    assert len(store) == 1


def test_store_rejects_empty_batch(store):
    with pytest.raises(ValueError):
        store.store([])


def test_session_ids_are_unique(store):
    ids = {store.store(make_actions(1)) for _ in range(50)}
    assert len(ids) == 50


def test_confirm_is_exactly_once(store):
    session_id = store.store(make_actions())

    assert len(store.confirm(session_id)) == 2
    assert store.confirm(session_id) is None
    assert store.get(session_id) is None


def test_cancel_then_confirm_fails(store):
    session_id = store.store(make_actions())

    assert store.cancel(session_id) is True
    assert store.cancel(session_id) is False
    assert store.confirm(session_id) is None


def test_expired_session_is_absent(store, clock):
    session_id = store.store(make_actions())

    clock.advance(599)
    assert store.get(session_id) is not None

    clock.advance(1)
    assert store.get(session_id) is None
    assert store.confirm(session_id) is None
    assert len(store) == 0


def test_expired_sessions_are_swept_on_store(store, clock):
    old = store.store(make_actions())
    clock.advance(601)

    store.store(make_actions())

    assert old not in store._pending


def test_results_claim_confirmed_batch_once(store):
    actions = make_actions()
    session_id = store.store(actions)
    store.confirm(session_id)

    assert store.take_for_results(session_id) == actions
    assert store.take_for_results(session_id) is None


def test_results_fall_back_to_pending_batch(store):
    actions = make_actions()
    session_id = store.store(actions)

    assert store.take_for_results(session_id) == actions
    assert store.get(session_id) is None


def test_unknown_session(store):
    assert store.get("session_nope") is None
    assert store.take_for_results("session_nope") is None
