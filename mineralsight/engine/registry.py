"""Stage registry. Every pipeline stage is a function registered via decorator.

Usage:
    @stage(id="S3.01", layer=Layer.PARTICLES, dependencies=["S2.01"])
    def particles(ctx: AnalysisContext) -> None:
        ctx.particles = extract(ctx.labels)

Adding a stage = creating one module under ``engine/stages`` with the decorator.
"""

from __future__ import annotations

import enum
import heapq
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from mineralsight.engine.context import AnalysisContext

logger = logging.getLogger(__name__)

# Stages with this tag may fail without failing the frame
AUXILIARY = "auxiliary"


class Layer(enum.IntEnum):
    FEATURES = 0
    SEGMENTATION = 1
    CLASSIFICATION = 2
    PARTICLES = 3
    ASSESSMENT = 4


@dataclass
class StageSpec:
    id: str
    layer: Layer
    fn: Callable[["AnalysisContext"], None]
    dependencies: list[str] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    description: str = ""

    @property
    def is_auxiliary(self) -> bool:
        return AUXILIARY in self.tags


class StageRegistry:
    """Registry of pipeline stages; one module-level instance."""

    def __init__(self) -> None:
        self._stages: dict[str, StageSpec] = {}

    def register(self, spec: StageSpec) -> None:
        if spec.id in self._stages:
            raise ValueError(f"Duplicate stage ID: {spec.id}")
        self._stages[spec.id] = spec
        logger.debug("Registered stage %s (%s)", spec.id, spec.layer.name)

    def get(self, stage_id: str) -> StageSpec:
        return self._stages[stage_id]

    def all(self) -> list[StageSpec]:
        return sorted(self._stages.values(), key=lambda s: (s.layer, s.id))

    def resolve_order(self, requested_ids: set[str] | None = None) -> list[StageSpec]:
        """Stages in execution order; ``requested_ids`` (default all) plus their dependencies.

        Ready stages run lowest (layer, id) first. Raises ``ValueError`` for an
        unknown stage or dependency, a dependency on a later layer, or a cycle.
        """
        if requested_ids is None:
            needed = set(self._stages)
        else:
            unknown = sorted(set(requested_ids) - set(self._stages))
            if unknown:
                raise ValueError(f"Unknown stage IDs requested: {unknown}")
            needed = set()
            stack = list(requested_ids)
            while stack:
                sid = stack.pop()
                if sid not in needed and sid in self._stages:
                    needed.add(sid)
                    stack.extend(self._stages[sid].dependencies)

        pending: dict[str, int] = {}
        dependents: dict[str, list[str]] = {sid: [] for sid in needed}
        for sid in needed:
            spec = self._stages[sid]
            deps = set(spec.dependencies)
            for dep in sorted(deps):
                upstream = self._stages.get(dep)
                if upstream is None:
                    raise ValueError(f"Stage {sid} depends on unknown stage {dep}")
                if upstream.layer > spec.layer:
                    raise ValueError(
                        f"Stage {sid} ({spec.layer.name}) depends on later-layer stage {dep} ({upstream.layer.name})"
                    )
                dependents[dep].append(sid)
            pending[sid] = len(deps)

        ready = [(self._stages[sid].layer, sid) for sid, n in pending.items() if n == 0]
        heapq.heapify(ready)
        ordered: list[StageSpec] = []
        while ready:
            _, sid = heapq.heappop(ready)
            ordered.append(self._stages[sid])
            for other in dependents[sid]:
                pending[other] -= 1
                if pending[other] == 0:
                    heapq.heappush(ready, (self._stages[other].layer, other))

        if len(ordered) != len(needed):
            stuck = sorted(needed - {s.id for s in ordered})
            raise ValueError(f"Circular dependency detected among: {stuck}")
        return ordered

    @property
    def count(self) -> int:
        return len(self._stages)


_registry = StageRegistry()


def get_registry() -> StageRegistry:
    return _registry


def stage(
    *,
    id: str,
    layer: Layer,
    dependencies: list[str] | None = None,
    tags: set[str] | None = None,
    description: str = "",
):
    """Decorator to register a stage function."""

    def decorator(fn: Callable[["AnalysisContext"], None]):
        _registry.register(
            StageSpec(
                id=id,
                layer=layer,
                fn=fn,
                dependencies=dependencies or [],
                tags=tags or set(),
                description=description,
            )
        )
        return fn

    return decorator
