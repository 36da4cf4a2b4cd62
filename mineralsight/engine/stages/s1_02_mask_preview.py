"""S1.02 — Mask preview overlay (auxiliary)."""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import AUXILIARY, Layer, stage
from mineralsight.engine.segmentation import SegmentationEngine


@stage(
    id="S1.02",
    layer=Layer.SEGMENTATION,
    dependencies=["S1.01"],
    tags={AUXILIARY},
    description="Render background-tinted mask preview",
)
def mask_preview(ctx: AnalysisContext) -> None:
    ctx.mask_preview = SegmentationEngine(ctx.config.segmentation).render_preview(
        ctx.features.rgb, ctx.mask
    )
