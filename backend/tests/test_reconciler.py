import asyncio

import pytest
from unittest.mock import MagicMock

from kube_context.engine.reconciler import RECONCILE_DEBOUNCE_SECONDS, ReconciliationTracker
from kube_context.utils.scheduler import AsyncioScheduler, ManualScheduler


@pytest.fixture
def settled():
    return MagicMock()


@pytest.fixture
def tracker(scheduler, settled):
    return ReconciliationTracker(scheduler, settled)


class TestReconciliationTracker:
    def test_idle_kind_ignores_added(self, tracker, scheduler):
        assert tracker.record_added("Pod", "default/a") is False
        assert scheduler.pending() == 0

    def test_settles_after_quiet_period(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/a")
        tracker.record_added("Pod", "default/b")
        scheduler.advance(RECONCILE_DEBOUNCE_SECONDS)
        settled.assert_called_once_with("Pod", {"default/a", "default/b"})
        assert not tracker.is_reconciling("Pod")

    def test_each_added_restarts_timer(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/a")
        scheduler.advance(1.9)
        tracker.record_added("Pod", "default/b")
        scheduler.advance(1.9)
        settled.assert_not_called()
        assert tracker.seen_keys("Pod") == {"default/a", "default/b"}
        scheduler.advance(0.2)
        settled.assert_called_once()

    def test_burst_with_no_events_stays_reconciling(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        scheduler.advance(60)
        settled.assert_not_called()
        assert tracker.is_reconciling("Pod")

    def test_begin_discards_previous_burst(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/old")
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/new")
        scheduler.advance(RECONCILE_DEBOUNCE_SECONDS)
        settled.assert_called_once_with("Pod", {"default/new"})

    def test_kinds_are_independent(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        tracker.begin("Node")
        tracker.record_added("Node", "/n1")
        scheduler.advance(RECONCILE_DEBOUNCE_SECONDS)
        settled.assert_called_once_with("Node", {"/n1"})
        assert tracker.is_reconciling("Pod")

    def test_reset_cancels_everything(self, tracker, scheduler, settled):
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/a")
        tracker.reset()
        assert scheduler.advance(RECONCILE_DEBOUNCE_SECONDS) == 0
        settled.assert_not_called()
        assert not tracker.is_reconciling("Pod")

    def test_custom_debounce(self, scheduler, settled):
        tracker = ReconciliationTracker(scheduler, settled, debounce_seconds=0.5)
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/a")
        scheduler.advance(0.5)
        settled.assert_called_once()


class TestManualScheduler:
    def test_runs_due_tasks_in_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2, lambda: calls.append("late"))
        scheduler.call_later(1, lambda: calls.append("early"))
        assert scheduler.advance(1) == 1
        assert calls == ["early"]
        assert scheduler.advance(1) == 1
        assert calls == ["early", "late"]
        assert scheduler.now == 2

    def test_cancelled_task_never_runs(self):
        scheduler = ManualScheduler()
        callback = MagicMock()
        task = scheduler.call_later(1, callback)
        task.cancel()
        assert task.cancelled()
        assert scheduler.pending() == 0
        scheduler.advance(5)
        callback.assert_not_called()

    def test_task_scheduled_from_callback_uses_its_due_time(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1, lambda: scheduler.call_later(1, lambda: calls.append("chained")))
        scheduler.advance(3)
        assert calls == ["chained"]


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_fires_on_running_loop(self):
        fired = asyncio.Event()
        AsyncioScheduler().call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1)
        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancel(self):
        callback = MagicMock()
        handle = AsyncioScheduler().call_later(0.01, callback)
        handle.cancel()
        await asyncio.sleep(0.05)
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_tracker_on_event_loop(self):
        settled = MagicMock()
        tracker = ReconciliationTracker(AsyncioScheduler(), settled, debounce_seconds=0.02)
        tracker.begin("Pod")
        tracker.record_added("Pod", "default/a")
        await asyncio.sleep(0.1)
        settled.assert_called_once_with("Pod", {"default/a"})

    def test_without_loop_nothing_is_scheduled(self):
        callback = MagicMock()
        assert AsyncioScheduler().call_later(1, callback) is None
        callback.assert_not_called()

    def test_tracker_keeps_collecting_without_loop(self):
        settled = MagicMock()
        tracker = ReconciliationTracker(AsyncioScheduler(), settled)
        tracker.begin("Pod")
        assert tracker.record_added("Pod", "default/a") is True
        assert tracker.seen_keys("Pod") == {"default/a"}
        settled.assert_not_called()
