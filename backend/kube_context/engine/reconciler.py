"""Per-kind reconciliation bookkeeping after a watch restart.

A kind is either idle or reconciling. While reconciling, every ADDED key is
collected and the settle timer is pushed back; when the timer fires the
collected keys are handed to ``on_settled`` and the kind goes idle again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from kube_context.utils.scheduler import ScheduledTask, Scheduler

RECONCILE_DEBOUNCE_SECONDS = 2.0


@dataclass
class Reconciling:
    seen_keys: set[str] = field(default_factory=set)
    pending: Optional[ScheduledTask] = None


class ReconciliationTracker:
    def __init__(
        self,
        scheduler: Scheduler,
        on_settled: Callable[[str, set[str]], None],
        debounce_seconds: float = RECONCILE_DEBOUNCE_SECONDS,
    ):
        self._scheduler = scheduler
        self._on_settled = on_settled
        self._debounce_seconds = debounce_seconds
        self._states: dict[str, Reconciling] = {}

    def is_reconciling(self, kind: str) -> bool:
        return kind in self._states

    def seen_keys(self, kind: str) -> set[str]:
        state = self._states.get(kind)
        return set(state.seen_keys) if state else set()

    def begin(self, kind: str) -> None:
        """Enter reconciliation for *kind*, discarding any earlier burst."""
        self.cancel(kind)
        self._states[kind] = Reconciling()

    def record_added(self, kind: str, key: str) -> bool:
        """Track an ADDED key and restart the settle timer. False when *kind* is idle."""
        state = self._states.get(kind)
        if state is None:
            return False
        state.seen_keys.add(key)
        if state.pending is not None:
            state.pending.cancel()
        state.pending = self._scheduler.call_later(self._debounce_seconds, lambda: self._settle(kind, state))
        return True

    def cancel(self, kind: str) -> None:
        state = self._states.pop(kind, None)
        if state is not None and state.pending is not None:
            state.pending.cancel()

    def reset(self) -> None:
        for kind in list(self._states):
            self.cancel(kind)

    def _settle(self, kind: str, state: Reconciling) -> None:
        # A newer begin() or reset() replaced this burst
        if self._states.get(kind) is not state:
            return
        del self._states[kind]
        if state.seen_keys:
            self._on_settled(kind, state.seen_keys)
