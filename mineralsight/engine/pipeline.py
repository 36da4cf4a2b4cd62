"""Pipeline orchestrator. Runs stages in dependency order on one frame."""

from __future__ import annotations

import importlib
import logging
import pkgutil
import time
from collections.abc import Generator
from typing import Any

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.classifier import SecondaryClassifier
from mineralsight.engine.config import PipelineConfig
from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.errors import InvalidInputError
from mineralsight.engine.features import validate_image
from mineralsight.engine.materials import MaterialsConfig, load_materials
from mineralsight.engine.registry import StageRegistry, get_registry
from mineralsight.engine.results import FullSceneAnalysis

logger = logging.getLogger(__name__)

STAGES_PACKAGE = "mineralsight.engine.stages"


def load_stages() -> int:
    """Import every stage module so the @stage decorators fire."""
    package = importlib.import_module(STAGES_PACKAGE)
    for _, module_name, _ in pkgutil.iter_modules(package.__path__):
        importlib.import_module(f"{STAGES_PACKAGE}.{module_name}")
    return get_registry().count


class Pipeline:
    """Orchestrates the analysis stages."""

    def __init__(
        self,
        registry: StageRegistry | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.registry = registry or get_registry()
        self.config = config

    def run(self, ctx: AnalysisContext) -> AnalysisContext:
        """Run every stage on ``ctx``. Core stage failures propagate."""
        for _ in self.run_streaming(ctx):
            pass
        return ctx

    def run_streaming(self, ctx: AnalysisContext) -> Generator[dict[str, Any], None, None]:
        """Run the pipeline, yielding a progress dict after each stage."""
        start = time.perf_counter()
        self._prepare(ctx)

        skip_ids = self._adaptive_gate(ctx)
        requested = {s.id for s in self.registry.all()} - skip_ids
        ordered = self.registry.resolve_order(requested)
        total = len(ordered)
        logger.info("Pipeline: %d stages queued (%d skipped)", total, len(skip_ids))

        for i, spec in enumerate(ordered):
            t0 = time.perf_counter()
            status = "ok"
            error = ""
            try:
                spec.fn(ctx)
                ctx.completed_stages.add(spec.id)
            except Exception as e:
                if not spec.is_auxiliary:
                    logger.error("  %s FAILED: %s", spec.id, e)
                    raise
                ctx.errors[spec.id] = str(e)
                status = "error"
                error = str(e)
                logger.warning("  %s FAILED (auxiliary): %s", spec.id, e)

            elapsed_ms = round((time.perf_counter() - t0) * 1000, 1)
            logger.debug("  %s completed in %.1fms", spec.id, elapsed_ms)
            yield {
                "stage_id": spec.id,
                "description": spec.description,
                "layer": spec.layer.name,
                "index": i,
                "total": total,
                "elapsed_ms": elapsed_ms,
                "status": status,
                "error": error,
            }

        logger.info(
            "Pipeline complete: %d/%d stages in %.0fms",
            len(ctx.completed_stages),
            total,
            (time.perf_counter() - start) * 1000,
        )

    def _prepare(self, ctx: AnalysisContext) -> None:
        """Validate inputs; input errors are raised, never recovered."""
        ctx.image = validate_image(ctx.image)
        if ctx.materials is None or not ctx.materials.classifiable():
            raise InvalidInputError("No materials with an HSV range are configured")
        if self.config is not None:
            ctx.config = self.config

    def _adaptive_gate(self, ctx: AnalysisContext) -> set[str]:
        """Stages to skip for this frame."""
        skip: set[str] = set()
        if not ctx.config.build_preview:
            skip.update(s.id for s in self.registry.all() if s.is_auxiliary)
        return skip


def create_pipeline(config: PipelineConfig | None = None) -> Pipeline:
    """Factory function for creating a pipeline over the registered stages."""
    load_stages()
    return Pipeline(config=config)


def analyze_scene(
    image: NDArray[np.uint8],
    materials: MaterialsConfig | None = None,
    config: PipelineConfig | None = None,
    secondary: SecondaryClassifier | None = None,
    image_path: str | None = None,
) -> FullSceneAnalysis:
    """Segment, classify, extract particles and assess one frame."""
    ctx = AnalysisContext(
        image=image,
        materials=materials if materials is not None else load_materials(),
        config=config or PipelineConfig(),
        secondary=secondary,
        image_path=image_path,
    )
    create_pipeline().run(ctx)
    return ctx.to_scene()
