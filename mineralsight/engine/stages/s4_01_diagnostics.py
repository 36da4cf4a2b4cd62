"""S4.01 — Image diagnostics: focus, clipping and foreground fraction."""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import Layer, stage
from mineralsight.engine.summary import compute_diagnostics


@stage(
    id="S4.01",
    layer=Layer.ASSESSMENT,
    dependencies=["S1.01"],
    description="Measure focus, clipping and foreground fraction",
)
def diagnostics(ctx: AnalysisContext) -> None:
    ctx.diagnostics = compute_diagnostics(ctx.features, ctx.mask)
