"""Generation tokens for watch streams.

When a watch restarts, the old stream may still be draining. Each restart
takes a new generation; events tagged with an older one are dropped before
they reach the engine.
"""

from __future__ import annotations

from typing import Optional


class GenerationGate:
    def __init__(self) -> None:
        self._generations: dict[str, int] = {}

    def next_generation(self, kind: str) -> int:
        generation = self._generations.get(kind, 0) + 1
        self._generations[kind] = generation
        return generation

    def current(self, kind: str) -> int:
        return self._generations.get(kind, 0)

    def is_current(self, kind: str, generation: Optional[int]) -> bool:
        """Untagged events are always delivered."""
        if generation is None:
            return True
        return generation == self._generations.get(kind, 0)

    def advance_all(self) -> None:
        """Invalidate every open stream, e.g. on cluster switch."""
        for kind in self._generations:
            self._generations[kind] += 1
