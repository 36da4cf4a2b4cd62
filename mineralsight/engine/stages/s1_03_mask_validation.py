"""S1.03 — Mask validation: flags cleanups that discarded more than they kept."""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import Layer, stage
from mineralsight.engine.summary import validate_mask


@stage(
    id="S1.03",
    layer=Layer.SEGMENTATION,
    dependencies=["S1.01"],
    description="Check mask cleanup statistics for anomalies",
)
def mask_validation(ctx: AnalysisContext) -> None:
    ctx.mask_validation = validate_mask(ctx.mask)
