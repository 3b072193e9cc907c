"""
Unit tests for the deferred task queue.
"""

from unittest.mock import Mock

from arkham.scheduling import DeferredTaskQueue


class TestDeferredTaskQueue:
    """Tests for DeferredTaskQueue."""

    def test_runs_in_queue_order(self):
        queue = DeferredTaskQueue()
        calls = []
        queue.schedule("a", lambda: calls.append("a"))
        queue.schedule("b", lambda: calls.append("b"))

        assert queue.run_pending() == 2

        assert calls == ["a", "b"]
        assert queue.pending == []

    def test_same_key_replaces_task(self):
        queue = DeferredTaskQueue()
        first, second = Mock(), Mock()
        queue.schedule("fit", first)
        queue.schedule("fit", second)

        queue.run_pending()

        first.assert_not_called()
        second.assert_called_once()

    def test_cancel(self):
        queue = DeferredTaskQueue()
        task = Mock()
        queue.schedule("fit", task)

        assert queue.cancel("fit") is True
        assert queue.cancel("fit") is False
        assert queue.run_pending() == 0
        task.assert_not_called()

    def test_failure_does_not_stop_others(self):
        queue = DeferredTaskQueue()
        after = Mock()
        queue.schedule("bad", Mock(side_effect=RuntimeError("boom")))
        queue.schedule("good", after)

        assert queue.run_pending() == 2
        after.assert_called_once()

    def test_tasks_scheduled_while_draining_wait(self):
        queue = DeferredTaskQueue()
        follow_up = Mock()
        queue.schedule("first", lambda: queue.schedule("second", follow_up))

        queue.run_pending()

        follow_up.assert_not_called()
        assert queue.is_pending("second")
        queue.run_pending()
        follow_up.assert_called_once()

    def test_clear(self):
        queue = DeferredTaskQueue()
        queue.schedule("a", Mock())
        queue.clear()
        assert not queue.is_pending("a")
