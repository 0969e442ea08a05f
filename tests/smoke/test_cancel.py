import threading
import time

import pytest

from httpu.utils.cancel import CancelScope, ScopeReason
from httpu.utils.group import TaskGroup
from httpu.utils.outbox import QueueClosed, ResponseQueue


def test_scope_without_deadline_never_fires_on_its_own():
    scope = CancelScope()
    assert scope.deadline is None
    assert scope.wait(0.1) is False
    assert scope.reason is None


def test_timeout_fires_with_deadline_exceeded():
    scope = CancelScope.with_timeout(0.1)
    assert scope.wait(2.0)
    assert scope.reason is ScopeReason.DEADLINE_EXCEEDED


def test_already_expired_deadline_fires_immediately():
    scope = CancelScope(deadline=time.monotonic() - 1)
    assert scope.cancelled
    assert scope.reason is ScopeReason.DEADLINE_EXCEEDED


def test_first_reason_wins():
    scope = CancelScope.with_timeout(5)
    scope.cancel()
    scope.cancel(ScopeReason.ABORTED)
    assert scope.reason is ScopeReason.CANCELED


def test_child_follows_parent_but_not_the_other_way():
    parent = CancelScope()
    child = CancelScope(parent=parent)
    sibling = CancelScope(parent=parent)

    sibling.cancel(ScopeReason.ABORTED)
    assert not parent.cancelled
    assert not child.cancelled

    parent.cancel()
    assert child.wait(1.0)
    assert child.reason is ScopeReason.CANCELED


def test_child_reports_earliest_deadline():
    parent = CancelScope.with_timeout(10)
    child = CancelScope.with_timeout(60, parent=parent)
    assert child.deadline == parent.deadline


def test_callback_on_fired_scope_runs_immediately():
    scope = CancelScope()
    scope.cancel()
    seen = []
    scope.add_done_callback(lambda s: seen.append(s.reason))
    assert seen == [ScopeReason.CANCELED]


def test_task_group_waits_for_all_then_raises_first_error():
    finished = threading.Event()

    def fails():
        raise RuntimeError("boom")

    def slow():
        time.sleep(0.2)
        finished.set()

    tasks = TaskGroup()
    tasks.go(fails)
    tasks.go(slow)
    with pytest.raises(RuntimeError, match="boom"):
        tasks.wait()
    assert finished.is_set()


def test_task_group_failure_aborts_its_scope():
    scope = CancelScope()
    tasks = TaskGroup(scope)
    tasks.go(lambda: scope.wait())

    def fails():
        raise ValueError("bad")

    tasks.go(fails)
    t0 = time.monotonic()
    with pytest.raises(ValueError):
        tasks.wait()
    assert time.monotonic() - t0 < 1.0
    assert scope.reason is ScopeReason.ABORTED


def test_queue_drains_then_reports_closed():
    q = ResponseQueue()
    q.put("a")
    q.put("b")
    q.close()
    with pytest.raises(QueueClosed):
        q.put("c")
    assert list(q) == ["a", "b"]
    with pytest.raises(QueueClosed):
        q.get(timeout=0.1)
    assert q.drain() == []
