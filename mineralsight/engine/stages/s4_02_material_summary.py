"""S4.02 — Material summary: sample fraction, ppm and presence score per material."""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.registry import Layer, stage
from mineralsight.engine.results import SampleFullAnalysisResult
from mineralsight.engine.summary import summarize_materials


@stage(
    id="S4.02",
    layer=Layer.ASSESSMENT,
    dependencies=["S3.01", "S4.01"],
    description="Summarize metals, crystals and gems",
)
def material_summary(ctx: AnalysisContext) -> None:
    metals, crystals, gems = summarize_materials(ctx.labels, ctx.materials)
    ctx.summary = SampleFullAnalysisResult(
        image_path=ctx.image_path,
        diagnostics=ctx.diagnostics,
        metals=metals,
        crystals=crystals,
        gems=gems,
        particles=list(ctx.particles),
    )
