"""In-memory resource store: kind -> namespace -> name -> snapshot."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from kube_context.engine.models import (
    ResourceSnapshot, is_unhealthy, namespace_key, reconcile_key,
)

_INT32_MASK = 0xFFFFFFFF
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def rolling_hash(text: str) -> str:
    """32-bit ``h*31 + c`` string hash rendered in base 36."""
    h = 0
    for ch in text:
        h = _to_int32((h << 5) - h + ord(ch))
    return _base36(h)


class ResourceStore:
    """Indexed snapshot storage. Reads never raise and return empty results for unknown keys."""

    def __init__(self) -> None:
        self._resources: dict[str, dict[str, dict[str, ResourceSnapshot]]] = {}

    def upsert(self, snapshot: ResourceSnapshot) -> None:
        by_ns = self._resources.setdefault(snapshot.kind, {})
        by_ns.setdefault(namespace_key(snapshot.namespace), {})[snapshot.name] = snapshot

    def delete(self, kind: str, namespace: Optional[str], name: str) -> None:
        by_ns = self._resources.get(kind)
        if by_ns is None:
            return
        ns = namespace_key(namespace)
        by_name = by_ns.get(ns)
        if by_name is None:
            return
        by_name.pop(name, None)
        if not by_name:
            del by_ns[ns]
        if not by_ns:
            del self._resources[kind]

    def clear(self) -> None:
        self._resources = {}

    def clear_kind(self, kind: str) -> None:
        self._resources.pop(kind, None)

    def reconcile_kind(self, kind: str, active_keys: Iterable[str]) -> int:
        """Drop every entry of *kind* whose ``namespace/name`` key is not in *active_keys*."""
        by_ns = self._resources.get(kind)
        if by_ns is None:
            return 0
        active = set(active_keys)
        removed = 0
        for ns in list(by_ns):
            by_name = by_ns[ns]
            for name in list(by_name):
                if reconcile_key(ns, name) not in active:
                    del by_name[name]
                    removed += 1
            if not by_name:
                del by_ns[ns]
        if not by_ns:
            del self._resources[kind]
        return removed

    def get(self, kind: str, namespace: Optional[str], name: str) -> Optional[ResourceSnapshot]:
        return self._resources.get(kind, {}).get(namespace_key(namespace), {}).get(name)

    def get_by_kind(self, kind: str) -> list[ResourceSnapshot]:
        return [s for by_name in self._resources.get(kind, {}).values() for s in by_name.values()]

    def get_by_namespace(self, kind: str, namespace: str) -> list[ResourceSnapshot]:
        return list(self._resources.get(kind, {}).get(namespace_key(namespace), {}).values())

    def get_all(self) -> list[ResourceSnapshot]:
        return [
            s
            for by_ns in self._resources.values()
            for by_name in by_ns.values()
            for s in by_name.values()
        ]

    def get_by_filter(self, predicate: Callable[[ResourceSnapshot], bool]) -> list[ResourceSnapshot]:
        return [s for s in self.get_all() if predicate(s)]

    def get_unhealthy(self) -> list[ResourceSnapshot]:
        return self.get_by_filter(is_unhealthy)

    def count(self) -> int:
        return sum(len(by_name) for by_ns in self._resources.values() for by_name in by_ns.values())

    def count_by_kind(self) -> dict[str, int]:
        return {
            kind: sum(len(by_name) for by_name in by_ns.values())
            for kind, by_ns in self._resources.items()
        }

    def hash_by_kind(self, kind: str) -> str:
        """Order-independent content hash of ``name:phase`` pairs; empty string for unknown kinds."""
        if kind not in self._resources:
            return ""
        parts = sorted(f"{s.name}:{s.phase}" for s in self.get_by_kind(kind))
        return rolling_hash("|".join(parts))
