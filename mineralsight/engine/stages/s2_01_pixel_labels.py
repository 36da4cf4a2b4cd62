"""S2.01 — Pixel labels.

Heuristic HSV scoring and the secondary classifier run on every sample pixel;
their predictions are fused into one material and confidence per pixel.
"""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.labeling import PixelClassifier
from mineralsight.engine.registry import Layer, stage


@stage(
    id="S2.01",
    layer=Layer.CLASSIFICATION,
    dependencies=["S1.01"],
    description="Classify and fuse per-pixel material scores",
)
def pixel_labels(ctx: AnalysisContext) -> None:
    classifier = PixelClassifier(ctx.materials, ctx.config.classifier, secondary=ctx.secondary)
    ctx.labels = classifier.classify_frame(ctx.features, ctx.mask)
