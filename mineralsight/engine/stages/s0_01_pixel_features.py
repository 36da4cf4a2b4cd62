"""S0.01 — Pixel features.

Grayscale, HSV, gradient magnitude and composite foreground index for every pixel.
"""

from __future__ import annotations

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.features import PixelFeatureExtractor
from mineralsight.engine.registry import Layer, stage


@stage(
    id="S0.01",
    layer=Layer.FEATURES,
    description="Compute grayscale, HSV, gradient and composite index",
)
def pixel_features(ctx: AnalysisContext) -> None:
    ctx.features = PixelFeatureExtractor(ctx.config.segmentation).extract(ctx.image)
