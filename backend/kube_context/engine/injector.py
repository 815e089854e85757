"""Selects, compresses and budgets resource context for AI prompts."""

from __future__ import annotations

import math
from typing import Iterable, Optional

from kube_context.engine.models import ContextQuery, ResourceSnapshot, is_unhealthy
from kube_context.engine.store import ResourceStore

RESOURCE_TYPE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Pod": ("pod", "pods", "container", "containers", "crashloop", "oom", "restart"),
    "Deployment": ("deployment", "deployments", "deploy", "deploys", "replica", "replicas", "rollout"),
    "Node": ("node", "nodes", "kubelet", "capacity", "allocatable"),
}

PROBLEM_KEYWORDS: tuple[str, ...] = (
    "problem", "problems", "issue", "issues", "error", "errors",
    "fail", "failing", "failed", "crash", "crashing", "crashloop",
    "unhealthy", "not ready", "notready", "pending", "stuck",
    "oom", "restart", "restarting", "broken", "down", "wrong",
)

SUMMARY_TOKEN_BUDGET = 500


def estimate_tokens(text: str) -> int:
    """Rough token count: characters / 4, rounded up."""
    return math.ceil(len(text) / 4)


def compress_resource(snapshot: ResourceSnapshot) -> str:
    """Render a snapshot as a single token-efficient line."""
    ns = f" ns={snapshot.namespace}" if snapshot.namespace else ""
    line = f"[{snapshot.kind}] {snapshot.name}{ns} phase={snapshot.phase} ready={str(snapshot.ready).lower()}"

    if snapshot.restart_count > 0:
        line += f" restarts={snapshot.restart_count}"

    if snapshot.replicas is not None:
        line += f" ready={snapshot.replicas.ready}/{snapshot.replicas.desired}"
        if snapshot.replicas.unavailable > 0:
            line += f" unavailable={snapshot.replicas.unavailable}"

    if snapshot.resource_usage is not None:
        usage = snapshot.resource_usage
        if usage.cpu_requests:
            line += f" cpu-req={usage.cpu_requests}"
        if usage.memory_requests:
            line += f" mem-req={usage.memory_requests}"

    if snapshot.warnings:
        line += f" warn={','.join(snapshot.warnings)}"

    return line


def _unhealthy_first(resources: Iterable[ResourceSnapshot]) -> list[ResourceSnapshot]:
    # sorted() is stable, so relative order within each group is kept
    return sorted(resources, key=lambda r: 0 if is_unhealthy(r) else 1)


def _fit_to_budget(resources: list[ResourceSnapshot], budget: int) -> str:
    lines: list[str] = []
    token_count = 0
    for resource in resources:
        line = compress_resource(resource)
        line_tokens = estimate_tokens(line + "\n")
        # The first line is always kept, even when it alone exceeds the budget
        if lines and token_count + line_tokens > budget:
            break
        lines.append(line)
        token_count += line_tokens
    return "\n".join(lines)


class ContextInjector:
    def __init__(self, store: ResourceStore, default_token_budget: int):
        self._store = store
        self._default_token_budget = default_token_budget

    @property
    def token_budget(self) -> int:
        return self._default_token_budget

    def set_token_budget(self, budget: int) -> None:
        self._default_token_budget = budget

    def compress_resource(self, snapshot: ResourceSnapshot) -> str:
        return compress_resource(snapshot)

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def infer_resource_types(self, message: str) -> list[str]:
        lower = message.lower()
        return [
            kind for kind, keywords in RESOURCE_TYPE_KEYWORDS.items()
            if any(kw in lower for kw in keywords)
        ]

    def is_problem_query(self, message: str) -> bool:
        lower = message.lower()
        return any(kw in lower for kw in PROBLEM_KEYWORDS)

    def _select(self, user_message: str, query: Optional[ContextQuery]) -> list[ResourceSnapshot]:
        if query is not None and query.resource_types:
            kinds = query.resource_types
        else:
            kinds = self.infer_resource_types(user_message)
        if kinds:
            return [r for kind in kinds for r in self._store.get_by_kind(kind)]
        return self._store.get_all()

    def build_chat_context(self, user_message: str, query: Optional[ContextQuery] = None) -> str:
        """Newline-joined compressed lines, unhealthy first, within the token budget."""
        budget = self._default_token_budget
        if query is not None and query.max_tokens is not None:
            budget = query.max_tokens

        resources = self._select(user_message, query)

        if query is not None and query.namespaces:
            allowed = set(query.namespaces)
            resources = [r for r in resources if r.namespace is not None and r.namespace in allowed]

        if query is not None and query.unhealthy_only:
            resources = [r for r in resources if is_unhealthy(r)]

        return _fit_to_budget(_unhealthy_first(resources), budget)

    def build_summary_context(self, resource_type: str, namespace: Optional[str] = None) -> str:
        """View-level digest of one kind under a fixed 500-token budget."""
        if namespace:
            resources = self._store.get_by_namespace(resource_type, namespace)
        else:
            resources = self._store.get_by_kind(resource_type)
        return _fit_to_budget(_unhealthy_first(resources), SUMMARY_TOKEN_BUDGET)
