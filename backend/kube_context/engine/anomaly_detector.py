"""Evaluates snapshots against a fixed rule list with dedup and an overflow cap."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from kube_context.engine.models import Anomaly, ResourceSnapshot, Severity, namespace_key
from kube_context.utils.logger import get_logger

logger = get_logger(__name__)

MAX_ACTIVE_ANOMALIES = 20
OVERFLOW_ANOMALY_ID = "__overflow_summary__"
OVERFLOW_ANOMALY_TYPE = "OverflowSummary"


def build_anomaly_id(kind: str, namespace: Optional[str], name: str, anomaly_type: str) -> str:
    return f"{kind}/{namespace_key(namespace)}/{name}/{anomaly_type}"


@dataclass(frozen=True)
class AnomalyRule:
    name: str
    evaluate: Callable[[ResourceSnapshot], Optional[Anomaly]]


def _anomaly(resource: ResourceSnapshot, anomaly_type: str, severity: Severity, message: str) -> Anomaly:
    return Anomaly(
        id=build_anomaly_id(resource.kind, resource.namespace, resource.name, anomaly_type),
        resource=resource,
        type=anomaly_type,
        severity=severity,
        message=message,
        detected_at=datetime.now(timezone.utc),
    )


def _crash_loop_back_off(resource: ResourceSnapshot) -> Optional[Anomaly]:
    if resource.kind != "Pod":
        return None
    if not any("CrashLoopBackOff" in w for w in resource.warnings):
        return None
    return _anomaly(resource, "CrashLoopBackOff", Severity.CRITICAL,
                    f"Pod {resource.name} is in CrashLoopBackOff")


def _oom_killed(resource: ResourceSnapshot) -> Optional[Anomaly]:
    if resource.kind != "Pod":
        return None
    if not any("OOMKilled" in w for w in resource.warnings):
        return None
    return _anomaly(resource, "OOMKilled", Severity.CRITICAL,
                    f"Pod {resource.name} was OOMKilled")


def _node_not_ready(resource: ResourceSnapshot) -> Optional[Anomaly]:
    if resource.kind != "Node" or resource.phase != "NotReady":
        return None
    return _anomaly(resource, "NodeNotReady", Severity.CRITICAL,
                    f"Node {resource.name} is NotReady")


def _deployment_unavailable(resource: ResourceSnapshot) -> Optional[Anomaly]:
    if resource.kind != "Deployment":
        return None
    if resource.replicas is None or resource.replicas.unavailable <= 0:
        return None
    return _anomaly(resource, "DeploymentUnavailable", Severity.WARNING,
                    f"Deployment {resource.name} has {resource.replicas.unavailable} unavailable replica(s)")


def _high_restart_count(resource: ResourceSnapshot) -> Optional[Anomaly]:
    if resource.kind != "Pod" or resource.restart_count <= 5:
        return None
    return _anomaly(resource, "HighRestartCount", Severity.WARNING,
                    f"Pod {resource.name} has restarted {resource.restart_count} times")


# Order matters once the cap is reached: earlier rules win.
BUILT_IN_RULES: tuple[AnomalyRule, ...] = (
    AnomalyRule("CrashLoopBackOff", _crash_loop_back_off),
    AnomalyRule("OOMKilled", _oom_killed),
    AnomalyRule("NodeNotReady", _node_not_ready),
    AnomalyRule("DeploymentUnavailable", _deployment_unavailable),
    AnomalyRule("HighRestartCount", _high_restart_count),
)


class AnomalyDetector:
    """Tracks active anomalies keyed by deterministic id."""

    def __init__(self, rules: Sequence[AnomalyRule] = BUILT_IN_RULES):
        self._rules = tuple(rules)
        self._active: dict[str, Anomaly] = {}

    def evaluate(self, snapshot: ResourceSnapshot) -> list[Anomaly]:
        """Run every rule; return only anomalies that were not already active."""
        new_anomalies: list[Anomaly] = []

        for rule in self._rules:
            anomaly = rule.evaluate(snapshot)
            if anomaly is None or anomaly.id in self._active:
                continue
            if len(self._active) >= MAX_ACTIVE_ANOMALIES:
                if OVERFLOW_ANOMALY_ID not in self._active:
                    summary = Anomaly(
                        id=OVERFLOW_ANOMALY_ID,
                        resource=snapshot,
                        type=OVERFLOW_ANOMALY_TYPE,
                        severity=Severity.WARNING,
                        message=f"{MAX_ACTIVE_ANOMALIES}+ resources affected — additional anomalies suppressed",
                        detected_at=datetime.now(timezone.utc),
                    )
                    self._active[OVERFLOW_ANOMALY_ID] = summary
                    new_anomalies.append(summary)
                    logger.warning("Active anomaly cap reached", extra={
                        "action": "anomaly_overflow",
                        "count": MAX_ACTIVE_ANOMALIES,
                    })
                break
            self._active[anomaly.id] = anomaly
            new_anomalies.append(anomaly)

        return new_anomalies

    def _clear_prefix(self, prefix: str) -> None:
        for anomaly_id in [k for k in self._active if k.startswith(prefix)]:
            del self._active[anomaly_id]

    def clear_for_resource(self, kind: str, namespace: Optional[str], name: str) -> None:
        self._clear_prefix(f"{kind}/{namespace_key(namespace)}/{name}/")

    def clear_for_kind(self, kind: str) -> None:
        self._clear_prefix(f"{kind}/")

    def get_active(self) -> list[Anomaly]:
        return list(self._active.values())
