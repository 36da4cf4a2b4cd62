"""S1.01 — Sample mask.

Adaptive threshold over the composite index, then frame-touching and small
regions are removed and small holes closed.
"""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import Layer, stage
from mineralsight.engine.segmentation import SegmentationEngine


@stage(
    id="S1.01",
    layer=Layer.SEGMENTATION,
    dependencies=["S0.01"],
    description="Segment sample from background",
)
def sample_mask(ctx: AnalysisContext) -> None:
    ctx.mask = SegmentationEngine(ctx.config.segmentation).segment(ctx.features)
