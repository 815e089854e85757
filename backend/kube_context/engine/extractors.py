"""Extract ResourceSnapshots from raw Kubernetes API objects.

Each extractor accepts the JSON shape delivered by a watch (camelCase dicts)
or a ``kubernetes`` client model such as ``V1Pod``. Missing or malformed
fields fall back to defaults instead of raising.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from kubernetes.client import ApiClient

from kube_context.engine.models import (
    ConditionSummary, ReplicaCounts, ResourceSnapshot, ResourceUsage,
)

_api_client: Optional[ApiClient] = None


def normalize_raw(raw: Any) -> dict:
    """Return *raw* as an API-shaped dict; client models are serialised with camelCase keys."""
    global _api_client
    if isinstance(raw, dict):
        return raw
    if hasattr(raw, "openapi_types") and hasattr(raw, "attribute_map"):
        if _api_client is None:
            _api_client = ApiClient()
        data = _api_client.sanitize_for_serialization(raw)
        return data if isinstance(data, dict) else {}
    return {}


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    return value if isinstance(value, int) else 0


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) and value else default


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _conditions(status: dict) -> list[ConditionSummary]:
    result = []
    for c in _list(status.get("conditions")):
        c = _dict(c)
        result.append(ConditionSummary(
            type=_str(c.get("type")),
            status=_str(c.get("status")),
            reason=_optional_str(c.get("reason")),
            message=_optional_str(c.get("message")),
        ))
    return result


def _find_condition(conditions: list[ConditionSummary], cond_type: str) -> Optional[ConditionSummary]:
    return next((c for c in conditions if c.type == cond_type), None)


def _container_resources(containers: list) -> Optional[ResourceUsage]:
    """First non-empty request/limit per field across containers (not a sum)."""
    found = {"cpu_requests": "", "memory_requests": "", "cpu_limits": "", "memory_limits": ""}
    has_some = False
    for c in containers:
        res = _dict(_dict(c).get("resources"))
        requests = _dict(res.get("requests"))
        limits = _dict(res.get("limits"))
        for field, source, attr in (
            ("cpu_requests", requests, "cpu"),
            ("memory_requests", requests, "memory"),
            ("cpu_limits", limits, "cpu"),
            ("memory_limits", limits, "memory"),
        ):
            value = _str(source.get(attr))
            if value:
                has_some = True
                found[field] = found[field] or value
    return ResourceUsage(**found) if has_some else None


def extract_pod_snapshot(raw_pod: Any) -> ResourceSnapshot:
    pod = normalize_raw(raw_pod)
    metadata = _dict(pod.get("metadata"))
    status = _dict(pod.get("status"))
    spec = _dict(pod.get("spec"))

    container_statuses = [_dict(c) for c in _list(status.get("containerStatuses"))]
    init_statuses = [_dict(c) for c in _list(status.get("initContainerStatuses"))]

    restart_count = sum(max(_int(c.get("restartCount")), 0) for c in container_statuses)
    ready = bool(container_statuses) and all(c.get("ready") is True for c in container_statuses)

    warnings: list[str] = []
    for c in init_statuses + container_statuses:
        state = _dict(c.get("state"))
        waiting = _str(_dict(state.get("waiting")).get("reason"))
        if waiting:
            warnings.append(waiting)
        terminated = _str(_dict(state.get("terminated")).get("reason"))
        if terminated and terminated != "Completed":
            warnings.append(terminated)
        last_terminated = _str(_dict(_dict(c.get("lastState")).get("terminated")).get("reason"))
        if last_terminated and last_terminated != "Completed":
            warnings.append(last_terminated)

    return ResourceSnapshot(
        kind="Pod",
        name=_str(metadata.get("name")),
        namespace=_optional_str(metadata.get("namespace")),
        phase=_str(status.get("phase"), "Unknown"),
        conditions=_conditions(status),
        restart_count=restart_count,
        ready=ready,
        age=_str(metadata.get("creationTimestamp")) or _now_iso(),
        resource_usage=_container_resources(_list(spec.get("containers"))),
        warnings=warnings,
    )


def _deployment_phase(conditions: list[ConditionSummary], unavailable: int) -> str:
    available = _find_condition(conditions, "Available")
    progressing = _find_condition(conditions, "Progressing")
    if available is not None and available.status == "True":
        return "Degraded" if unavailable > 0 else "Available"
    if progressing is not None and progressing.status == "True":
        return "Progressing"
    if available is not None and available.status == "False":
        return "Unavailable"
    return "Unknown"


def extract_deployment_snapshot(raw_deployment: Any) -> ResourceSnapshot:
    deployment = normalize_raw(raw_deployment)
    metadata = _dict(deployment.get("metadata"))
    status = _dict(deployment.get("status"))
    spec = _dict(deployment.get("spec"))

    desired = max(_int(spec.get("replicas")), 0)
    ready_replicas = max(_int(status.get("readyReplicas")), 0)
    unavailable = max(_int(status.get("unavailableReplicas")), 0)
    conditions = _conditions(status)

    warnings = [f"{unavailable} unavailable replica(s)"] if unavailable > 0 else []

    return ResourceSnapshot(
        kind="Deployment",
        name=_str(metadata.get("name")),
        namespace=_optional_str(metadata.get("namespace")),
        phase=_deployment_phase(conditions, unavailable),
        conditions=conditions,
        restart_count=0,
        ready=unavailable == 0 and ready_replicas >= desired,
        age=_str(metadata.get("creationTimestamp")) or _now_iso(),
        replicas=ReplicaCounts(desired=desired, ready=ready_replicas, unavailable=unavailable),
        warnings=warnings,
    )


def extract_node_snapshot(raw_node: Any) -> ResourceSnapshot:
    node = normalize_raw(raw_node)
    metadata = _dict(node.get("metadata"))
    status = _dict(node.get("status"))
    conditions = _conditions(status)

    ready_condition = _find_condition(conditions, "Ready")
    is_ready = ready_condition is not None and ready_condition.status == "True"

    # Pressure-type conditions are the ones reporting True besides Ready
    warnings = [c.type for c in conditions if c.type != "Ready" and c.status == "True"]
    if not is_ready and ready_condition is not None and ready_condition.message:
        warnings.append(ready_condition.message)

    allocatable = _dict(status.get("allocatable"))
    capacity = _dict(status.get("capacity"))
    resource_usage = None
    if _str(allocatable.get("cpu")) or _str(allocatable.get("memory")):
        resource_usage = ResourceUsage(
            cpu_requests=_str(allocatable.get("cpu")),
            memory_requests=_str(allocatable.get("memory")),
            cpu_limits=_str(capacity.get("cpu")),
            memory_limits=_str(capacity.get("memory")),
        )

    return ResourceSnapshot(
        kind="Node",
        name=_str(metadata.get("name")),
        namespace=None,
        phase="Ready" if is_ready else "NotReady",
        conditions=conditions,
        restart_count=0,
        ready=is_ready,
        age=_str(metadata.get("creationTimestamp")) or _now_iso(),
        resource_usage=resource_usage,
        warnings=warnings,
    )


EXTRACTORS: dict[str, Callable[[Any], ResourceSnapshot]] = {
    "Pod": extract_pod_snapshot,
    "Deployment": extract_deployment_snapshot,
    "Node": extract_node_snapshot,
}


def extract_snapshot(kind: str, raw: Any) -> Optional[ResourceSnapshot]:
    """Dispatch to the extractor registered for *kind*; None for unsupported kinds."""
    extractor = EXTRACTORS.get(kind)
    if extractor is None:
        return None
    return extractor(raw)
