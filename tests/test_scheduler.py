"""Tests for EffectQueue transactions and deferred effects."""
import pytest

from formstate.scheduler import EffectQueue


@pytest.fixture
def events():
    return []


@pytest.fixture
def queue(events):
    return EffectQueue(on_commit=lambda label: events.append(("commit", label)))


def test_nested_transactions_commit_once(queue, events):
    with queue.transaction("outer"):
        with queue.transaction("inner"):
            pass
        assert queue.in_transaction
    assert events == [("commit", "outer")]
    assert not queue.in_transaction


def test_effects_run_after_commit(queue, events):
    with queue.transaction("insert"):
        queue.defer(lambda: events.append("effect"), "write values")
        assert queue.pending_labels == ["write values"]
    assert events == [("commit", "insert"), "effect", ("commit", "write values")]
    assert queue.pending_labels == []


def test_effect_outside_transaction_runs_immediately(queue, events):
    queue.defer(lambda: events.append("effect"))
    assert events == ["effect", ("commit", "deferred")]


def test_effects_drain_in_order(queue, events):
    with queue.transaction("batch"):
        queue.defer(lambda: events.append("first"))
        queue.defer(lambda: events.append("second"))
    assert [e for e in events if isinstance(e, str)] == ["first", "second"]


def test_effect_queued_by_effect_runs_after_it(queue, events):
    def first():
        events.append("first")
        queue.defer(lambda: events.append("second"))

    with queue.transaction("batch"):
        queue.defer(first)
    assert [e for e in events if isinstance(e, str)] == ["first", "second"]


def test_commit_during_notification_does_not_drain(events):
    """A listener committing its own change runs before the queued effect."""
    def on_commit(label):
        events.append(("commit", label))
        if label == "insert":
            with queue.transaction("rename"):
                pass

    queue = EffectQueue(on_commit=on_commit)
    with queue.transaction("insert"):
        queue.defer(lambda: events.append("effect"), "write")
    assert events == [("commit", "insert"), ("commit", "rename"), "effect", ("commit", "write")]


def test_failed_transaction_still_commits(queue, events):
    with pytest.raises(RuntimeError):
        with queue.transaction("broken"):
            raise RuntimeError("boom")
    assert events == [("commit", "broken")]
    assert not queue.in_transaction
