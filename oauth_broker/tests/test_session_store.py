"""Tests for the in-memory session store: TTL, lazy expiry, sweep, completion compare-and-set."""
import pytest

from oauth_broker.errors import SessionBusy, SessionNotFound
from oauth_broker.session_store import CompletionResult, SessionStore


@pytest.fixture
def store(clock):
    return SessionStore(clock=clock, ttl_seconds=1800)


def test_create_and_get(store, clock):
    session = store.create("s1", "http://localhost:3000/oauth-callback")
    assert session.created_at == clock.now()
    assert session.result is None
    assert store.get("s1") is session


def test_get_unknown_state(store):
    assert store.get("nope") is None


def test_get_treats_expired_as_absent_without_sweep(store, clock):
    store.create("s1", "http://localhost:3000/oauth-callback")
    clock.advance(1801)
    assert store.get("s1") is None
    # Still physically stored until swept
    assert len(store) == 1


def test_session_at_exact_ttl_is_still_live(store, clock):
    store.create("s1", "http://localhost:3000/oauth-callback")
    clock.advance(1800)
    assert store.get("s1") is not None


def test_sweep_removes_only_expired(store, clock):
    store.create("old", "http://localhost:3000/oauth-callback")
    clock.advance(1000)
    store.create("new", "http://localhost:3000/oauth-callback")
    clock.advance(900)
    assert store.sweep_expired() == 1
    assert store.get("old") is None
    assert store.get("new") is not None
    assert len(store) == 1


def test_sweep_with_explicit_now(store, clock):
    store.create("s1", "http://localhost:3000/oauth-callback")
    assert store.sweep_expired(now=clock.now() + 5000) == 1
    assert len(store) == 0


def test_reading_does_not_extend_lifetime(store, clock):
    store.create("s1", "http://localhost:3000/oauth-callback")
    for _ in range(3):
        clock.advance(600)
        store.get("s1")
    clock.advance(1)
    assert store.get("s1") is None


def test_begin_completion_marks_in_progress(store):
    store.create("s1", "http://localhost:3000/oauth-callback")
    session = store.begin_completion("s1")
    assert session.in_progress is True


def test_begin_completion_twice_is_busy(store):
    store.create("s1", "http://localhost:3000/oauth-callback")
    store.begin_completion("s1")
    with pytest.raises(SessionBusy):
        store.begin_completion("s1")


def test_begin_completion_unknown_or_expired(store, clock):
    with pytest.raises(SessionNotFound):
        store.begin_completion("missing")
    store.create("s1", "http://localhost:3000/oauth-callback")
    clock.advance(1801)
    with pytest.raises(SessionNotFound):
        store.begin_completion("s1")


def test_finish_completion_stores_result_and_releases(store):
    store.create("s1", "http://localhost:3000/oauth-callback")
    store.begin_completion("s1")
    result = CompletionResult(success=True, message="ok")
    store.finish_completion("s1", result)
    session = store.get("s1")
    assert session.result is result
    assert session.in_progress is False


def test_finish_completion_after_sweep_is_noop(store, clock):
    store.create("s1", "http://localhost:3000/oauth-callback")
    store.begin_completion("s1")
    clock.advance(1801)
    store.sweep_expired()
    store.finish_completion("s1", CompletionResult(success=False, message="late"))
    assert len(store) == 0


def test_completion_result_to_dict():
    assert CompletionResult(True, "ok").to_dict() == {"success": True, "message": "ok"}
    assert CompletionResult(False, "x", state="s").to_dict() == {"success": False, "message": "x", "state": "s"}


def test_release_returns_to_pending_without_result(store):
    store.create("s1", "http://localhost:3000/oauth-callback")
    store.begin_completion("s1")
    store.release("s1")
    session = store.get("s1")
    assert session.in_progress is False
    assert session.result is None
    # Can be claimed again
    assert store.begin_completion("s1") is session


def test_release_unknown_state_is_noop(store):
    store.release("missing")
    assert len(store) == 0
