"""ContextEngine — orchestrates store, anomaly detection, context injection and summary caching.

Watchers feed raw resource events into ``handle_resource_event``; UI and
prompt builders read back through the query methods. All mutation happens
synchronously inside the call that delivered the event.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from kube_context.config import ConfigUpdate, ContextEngineConfig
from kube_context.engine.anomaly_detector import AnomalyDetector
from kube_context.engine.extractors import extract_snapshot, normalize_raw
from kube_context.engine.injector import ContextInjector
from kube_context.engine.models import (
    Anomaly, ContextQuery, EngineStatus, ResourceSnapshot, ViewSummaryData, reconcile_key,
)
from kube_context.engine.reconciler import ReconciliationTracker
from kube_context.engine.store import ResourceStore
from kube_context.engine.summary import SummaryCache, build_structured_summary, summary_cache_key
from kube_context.utils.event_emitter import ANOMALY, STORE_UPDATED, NotificationEmitter
from kube_context.utils.logger import get_logger
from kube_context.utils.scheduler import AsyncioScheduler, Scheduler

logger = get_logger(__name__)

EventType = Literal["ADDED", "MODIFIED", "DELETED"]
ALL_KINDS = "*"


class ContextEngine:
    def __init__(
        self,
        config: Optional[ContextEngineConfig] = None,
        scheduler: Optional[Scheduler] = None,
        emitter: Optional[NotificationEmitter] = None,
    ):
        self._config = (config or ContextEngineConfig()).model_copy()
        self._store = ResourceStore()
        self._detector = AnomalyDetector()
        self._injector = ContextInjector(self._store, self._config.token_budget)
        self._summary_cache = SummaryCache()
        self._reconciler = ReconciliationTracker(scheduler or AsyncioScheduler(), self._on_reconcile_settled)
        self.emitter = emitter or NotificationEmitter()
        self._last_update: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Event ingestion
    # ------------------------------------------------------------------

    def handle_resource_event(self, kind: str, event_type: EventType, resource: Any) -> None:
        if event_type == "DELETED":
            self._handle_deleted(kind, resource)
            return
        if event_type not in ("ADDED", "MODIFIED"):
            logger.warning("Ignoring unknown event type", extra={"action": "unknown_event", "kind": kind, "event_type": event_type})
            return

        snapshot = self._extract(kind, resource)
        if snapshot is None:
            return

        self._store.upsert(snapshot)
        self._touch()

        if self._config.anomaly_detection_enabled:
            # Cleared first so an anomaly that persists is reported again on every update
            self._detector.clear_for_resource(kind, snapshot.namespace, snapshot.name)
            for anomaly in self._detector.evaluate(snapshot):
                self.emitter.emit(ANOMALY, anomaly)

        self._summary_cache.invalidate_kind(kind)
        self.emitter.emit(STORE_UPDATED, {"kind": kind})

        if event_type == "ADDED":
            self._reconciler.record_added(kind, reconcile_key(snapshot.namespace, snapshot.name))

    def _handle_deleted(self, kind: str, resource: Any) -> None:
        metadata = normalize_raw(resource).get("metadata")
        metadata = metadata if isinstance(metadata, dict) else {}
        name = metadata.get("name") or ""
        namespace = metadata.get("namespace") or None

        self._store.delete(kind, namespace, name)
        self._detector.clear_for_resource(kind, namespace, name)
        self._summary_cache.invalidate_kind(kind)
        self._touch()
        self.emitter.emit(STORE_UPDATED, {"kind": kind})

    def _extract(self, kind: str, resource: Any) -> Optional[ResourceSnapshot]:
        try:
            snapshot = extract_snapshot(kind, resource)
        except Exception:
            logger.warning("Failed to extract snapshot", exc_info=True, extra={"action": "extract_failed", "kind": kind})
            return None
        if snapshot is None:
            logger.debug("No extractor for kind", extra={"action": "unsupported_kind", "kind": kind})
        return snapshot

    def on_cluster_switch(self) -> None:
        """Drop all state for the previous cluster."""
        self._store.clear()
        self._summary_cache.clear()
        self._detector = AnomalyDetector()
        self._reconciler.reset()
        self._last_update = None
        logger.info("Cluster switched, context cleared", extra={"action": "cluster_switch"})
        self.emitter.emit(STORE_UPDATED, {"kind": ALL_KINDS})

    def clear_kind(self, kind: str) -> None:
        """Forget *kind* ahead of a watch restart; the replayed ADDED burst is reconciled."""
        self._store.clear_kind(kind)
        self._detector.clear_for_kind(kind)
        self._summary_cache.invalidate_kind(kind)
        self._reconciler.begin(kind)
        self._touch()
        self.emitter.emit(STORE_UPDATED, {"kind": kind})

    def _on_reconcile_settled(self, kind: str, seen_keys: set[str]) -> None:
        removed = self._store.reconcile_kind(kind, seen_keys)
        if removed > 0:
            self._detector.clear_for_kind(kind)
            self._summary_cache.invalidate_kind(kind)
            self._touch()
            self.emitter.emit(STORE_UPDATED, {"kind": kind})
        logger.info("Reconciled kind", extra={"action": "reconcile", "kind": kind, "count": removed})

    def is_reconciling(self, kind: str) -> bool:
        return self._reconciler.is_reconciling(kind)

    def _touch(self) -> None:
        self._last_update = datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Queries and configuration
    # ------------------------------------------------------------------

    def get_summary(self, resource_type: str, namespace: Optional[str] = None) -> ViewSummaryData:
        if not self._config.summaries_enabled:
            return self._build_summary(resource_type, namespace)

        key = summary_cache_key(resource_type, namespace)
        current_hash = self._store.hash_by_kind(resource_type)
        cached = self._summary_cache.get(key, current_hash)
        if cached is not None:
            return cached.model_copy(update={"from_cache": True})

        data = self._build_summary(resource_type, namespace)
        self._summary_cache.put(key, data, current_hash)
        return data

    def _build_summary(self, resource_type: str, namespace: Optional[str]) -> ViewSummaryData:
        if namespace:
            resources = self._store.get_by_namespace(resource_type, namespace)
        else:
            resources = self._store.get_by_kind(resource_type)
        return build_structured_summary(resource_type, resources)

    def build_chat_context(self, user_message: str, query: Optional[ContextQuery] = None) -> str:
        return self._injector.build_chat_context(user_message, query)

    def build_summary_context(self, resource_type: str, namespace: Optional[str] = None) -> str:
        return self._injector.build_summary_context(resource_type, namespace)

    def update_config(self, partial: Union[ConfigUpdate, dict]) -> ContextEngineConfig:
        if not isinstance(partial, ConfigUpdate):
            partial = ConfigUpdate.model_validate(partial)
        changes = partial.model_dump(exclude_none=True)
        if changes:
            self._config = self._config.model_copy(update=changes)
            self._injector.set_token_budget(self._config.token_budget)
            logger.info("Context engine config updated", extra={"action": "config_update", "extra": changes})
        return self.get_config()

    def get_config(self) -> ContextEngineConfig:
        return self._config.model_copy()

    def get_status(self) -> EngineStatus:
        return EngineStatus(resource_count=self._store.count(), last_update=self._last_update)

    def get_anomalies(self) -> list[Anomaly]:
        return self._detector.get_active()

    def get_store(self) -> ResourceStore:
        return self._store

    @property
    def injector(self) -> ContextInjector:
        return self._injector
