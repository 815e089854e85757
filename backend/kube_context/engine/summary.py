"""View summaries: stat boxes, issue lines and a one-sentence overview per resource kind."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from kube_context.engine.models import (
    ResourceSnapshot, StatColor, SummaryStatBox, ViewSummaryData, is_unhealthy,
)

HIGH_RESTART_THRESHOLD = 5
TOP_RESTART_PODS = 5

_HEALTHY_TEXT = {
    "Pod": "All running and healthy.",
    "Deployment": "All fully available.",
    "Node": "All nodes ready.",
}


def _build_stats(resource_type: str, resources: list[ResourceSnapshot], unhealthy_count: int) -> list[SummaryStatBox]:
    stats = [SummaryStatBox(label="Total", value=len(resources), color=StatColor.BLUE)]

    if resource_type == "Pod":
        phases = Counter(r.phase or "Unknown" for r in resources)
        for label, color in (
            ("Running", StatColor.GREEN),
            ("Pending", StatColor.YELLOW),
            ("Failed", StatColor.RED),
            ("Succeeded", StatColor.GRAY),
        ):
            if phases[label] > 0:
                stats.append(SummaryStatBox(label=label, value=phases[label], color=color))
    elif resource_type == "Deployment":
        available = sum(1 for r in resources if r.ready)
        degraded = sum(1 for r in resources if r.replicas is not None and r.replicas.unavailable > 0)
        stats.append(SummaryStatBox(label="Available", value=available, color=StatColor.GREEN))
        if degraded > 0:
            stats.append(SummaryStatBox(label="Degraded", value=degraded, color=StatColor.RED))
    elif resource_type == "Node":
        ready = sum(1 for r in resources if r.phase == "Ready")
        not_ready = sum(1 for r in resources if r.phase == "NotReady")
        stats.append(SummaryStatBox(label="Ready", value=ready, color=StatColor.GREEN))
        if not_ready > 0:
            stats.append(SummaryStatBox(label="Not Ready", value=not_ready, color=StatColor.RED))

    if unhealthy_count > 0:
        stats.append(SummaryStatBox(label="Warnings", value=unhealthy_count, color=StatColor.YELLOW))
    return stats


def _warning_issues(unhealthy: list[ResourceSnapshot]) -> list[str]:
    by_warning: dict[str, list[str]] = {}
    for r in unhealthy:
        for w in r.warnings:
            by_warning.setdefault(w, []).append(r.name)

    issues = []
    for warning, names in by_warning.items():
        if len(names) == 1:
            issues.append(f"{names[0]} — {warning}")
        elif len(names) <= 3:
            issues.append(f"{warning}: {', '.join(names)}")
        else:
            issues.append(f"{len(names)} resources with {warning}")
    return issues


def _mentions(issues: list[str], name: str) -> bool:
    return any(name in issue for issue in issues)


def _kind_issues(resource_type: str, resources: list[ResourceSnapshot], issues: list[str]) -> None:
    if resource_type == "Pod":
        high_restarts = sorted(
            (r for r in resources if r.restart_count > HIGH_RESTART_THRESHOLD),
            key=lambda r: r.restart_count,
            reverse=True,
        )[:TOP_RESTART_PODS]
        for r in high_restarts:
            if not _mentions(issues, r.name):
                issues.append(f"{r.name} — {r.restart_count} restarts")

    elif resource_type == "Deployment":
        for r in resources:
            if r.replicas is None or r.replicas.unavailable <= 0:
                continue
            if not _mentions(issues, r.name):
                issues.append(f"{r.name} — {r.replicas.ready}/{r.replicas.desired} ready")

    elif resource_type == "Node":
        for r in resources:
            if r.phase == "NotReady" and not _mentions(issues, r.name):
                issues.append(f"{r.name} — NotReady")
        for r in resources:
            pressure = [w for w in r.warnings if "Pressure" in w]
            if not pressure:
                continue
            if not any(r.name in i and "Pressure" in i for i in issues):
                issues.append(f"{r.name} — {', '.join(pressure)}")


def _build_text(resource_type: str, resources: list[ResourceSnapshot], unhealthy_count: int) -> str:
    total = len(resources)
    noun = f"{resource_type.lower()}s"
    namespaces = sorted({r.namespace for r in resources if r.namespace})

    if len(namespaces) > 1:
        parts = [f"{total} {noun} across {len(namespaces)} namespaces."]
    elif len(namespaces) == 1:
        parts = [f"{total} {noun} in {namespaces[0]}."]
    else:
        parts = [f"{total} {noun}."]

    if unhealthy_count == 0:
        healthy = _HEALTHY_TEXT.get(resource_type)
        if healthy:
            parts.append(healthy)
    else:
        parts.append(f"{unhealthy_count} with issues.")
    return " ".join(parts)


def build_structured_summary(resource_type: str, resources: list[ResourceSnapshot]) -> ViewSummaryData:
    """Summarise *resources* of a single kind for dashboard rendering."""
    if not resources:
        return ViewSummaryData(
            text=f"No {resource_type.lower()}s found.",
            stats=[SummaryStatBox(label="Total", value=0, color=StatColor.GRAY)],
            issues=[],
        )

    unhealthy = [r for r in resources if is_unhealthy(r)]
    issues = _warning_issues(unhealthy)
    _kind_issues(resource_type, resources, issues)

    return ViewSummaryData(
        text=_build_text(resource_type, resources, len(unhealthy)),
        stats=_build_stats(resource_type, resources, len(unhealthy)),
        issues=issues,
    )


def summary_cache_key(resource_type: str, namespace: Optional[str]) -> str:
    return f"{resource_type}:{namespace or ''}"


@dataclass
class SummaryCacheEntry:
    data: ViewSummaryData
    hash: str
    cached_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SummaryCache:
    """Summaries keyed by ``kind:namespace``; valid only while the kind's content hash matches."""

    def __init__(self) -> None:
        self._entries: dict[str, SummaryCacheEntry] = {}

    def get(self, key: str, current_hash: str) -> Optional[ViewSummaryData]:
        entry = self._entries.get(key)
        if entry is None or entry.hash != current_hash:
            return None
        return entry.data

    def put(self, key: str, data: ViewSummaryData, current_hash: str) -> None:
        # from_cache is a read-time flag and is never stored as True
        self._entries[key] = SummaryCacheEntry(data=data.model_copy(update={"from_cache": False}), hash=current_hash)

    def invalidate_kind(self, kind: str) -> int:
        prefix = f"{kind}:"
        stale = [k for k in self._entries if k.startswith(prefix)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
