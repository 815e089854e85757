"""Pydantic models for the cluster context engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class StatColor(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    BLUE = "blue"
    GRAY = "gray"


class ResourceKey(NamedTuple):
    """Identity of a snapshot inside the store. Empty namespace = cluster-scoped."""
    kind: str
    namespace: str
    name: str


def namespace_key(namespace: Optional[str]) -> str:
    return namespace or ""


def reconcile_key(namespace: Optional[str], name: str) -> str:
    """Key format used by reconciliation: ``namespace-or-empty/name``."""
    return f"{namespace_key(namespace)}/{name}"


class ConditionSummary(CamelModel):
    type: str = ""
    status: str = ""
    reason: Optional[str] = None
    message: Optional[str] = None


class ResourceUsage(CamelModel):
    cpu_requests: str = ""
    memory_requests: str = ""
    cpu_limits: str = ""
    memory_limits: str = ""


class ReplicaCounts(CamelModel):
    desired: int = 0
    ready: int = 0
    unavailable: int = 0


class ResourceSnapshot(CamelModel):
    """Compressed view of one resource's status-relevant fields."""
    kind: str
    name: str
    namespace: Optional[str] = None
    phase: str = "Unknown"
    conditions: list[ConditionSummary] = Field(default_factory=list)
    restart_count: int = Field(default=0, ge=0)
    ready: bool = False
    age: str = ""
    resource_usage: Optional[ResourceUsage] = None
    replicas: Optional[ReplicaCounts] = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, namespace_key(self.namespace), self.name)


_UNHEALTHY_PHASES = frozenset({"Failed", "CrashLoopBackOff", "NotReady"})


def is_unhealthy(snapshot: ResourceSnapshot) -> bool:
    """Not ready, failing phase, any warning, or unavailable replicas."""
    return (
        not snapshot.ready
        or snapshot.phase in _UNHEALTHY_PHASES
        or len(snapshot.warnings) > 0
        or (snapshot.replicas is not None and snapshot.replicas.unavailable > 0)
    )


class Anomaly(CamelModel):
    id: str
    resource: ResourceSnapshot
    type: str
    severity: Severity
    message: str
    detected_at: datetime


class ContextQuery(CamelModel):
    resource_types: Optional[list[str]] = None
    namespaces: Optional[list[str]] = None
    unhealthy_only: bool = False
    max_tokens: Optional[int] = Field(default=None, gt=0)


class SummaryStatBox(CamelModel):
    label: str
    value: int
    color: StatColor


class ViewSummaryData(CamelModel):
    text: str
    stats: list[SummaryStatBox] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)
    from_cache: bool = False


class EngineStatus(CamelModel):
    resource_count: int = 0
    last_update: Optional[datetime] = None
