"""S4.03 — Consistency check; its suggested status becomes the quality status."""

from __future__ import annotations

from mineralsight.engine.consistency import ConsistencyAssessor
from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import Layer, stage


@stage(
    id="S4.03",
    layer=Layer.ASSESSMENT,
    dependencies=["S1.03", "S4.02"],
    description="Raise quality alerts and suggest a quality status",
)
def consistency(ctx: AnalysisContext) -> None:
    ctx.consistency = ConsistencyAssessor().check(ctx.diagnostics, ctx.mask_validation, ctx.summary)
    ctx.summary.quality_status = ctx.consistency.suggested_quality_status
