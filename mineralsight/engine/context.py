"""AnalysisContext: the per-frame state object flowing through all stages.

Every stage writes fresh objects here; nothing is shared between frames.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.classifier import SecondaryClassifier
from mineralsight.engine.config import PipelineConfig
from mineralsight.engine.features import PixelFeatureFrame
from mineralsight.engine.labels import PixelLabelGrid
from mineralsight.engine.mask import SampleMask
from mineralsight.engine.materials import MaterialsConfig
from mineralsight.engine.results import (
    ConsistencyCheckResult,
    FullSceneAnalysis,
    ImageDiagnostics,
    MaskValidation,
    ParticleRecord,
    SampleFullAnalysisResult,
)


@dataclass
class AnalysisContext:
    # --- Inputs ---
    image: NDArray[np.uint8] | None = None
    materials: MaterialsConfig | None = None
    config: PipelineConfig = field(default_factory=PipelineConfig)
    # None = built-in heuristic stub
    secondary: SecondaryClassifier | None = None
    image_path: str | None = None

    # --- Segmentation ---
    features: PixelFeatureFrame | None = None
    mask: SampleMask | None = None
    mask_preview: NDArray[np.uint8] | None = None
    mask_validation: MaskValidation | None = None

    # --- Classification / particles ---
    labels: PixelLabelGrid | None = None
    particles: list[ParticleRecord] = field(default_factory=list)

    # --- Assessment ---
    diagnostics: ImageDiagnostics | None = None
    summary: SampleFullAnalysisResult | None = None
    consistency: ConsistencyCheckResult | None = None

    # --- Pipeline metadata ---
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def width(self) -> int:
        return 0 if self.image is None else int(self.image.shape[1])

    @property
    def height(self) -> int:
        return 0 if self.image is None else int(self.image.shape[0])

    def to_scene(self) -> FullSceneAnalysis:
        """Bind the finished results into a FullSceneAnalysis."""
        if self.summary is None or self.labels is None or self.mask is None or self.consistency is None:
            missing = [
                name
                for name in ("summary", "labels", "mask", "consistency")
                if getattr(self, name) is None
            ]
            raise RuntimeError(f"Analysis incomplete, missing: {', '.join(missing)}")
        return FullSceneAnalysis(
            summary=self.summary,
            labels=self.labels,
            mask=self.mask,
            mask_preview=self.mask_preview,
            consistency=self.consistency,
            mask_validation=self.mask_validation or MaskValidation(),
        )
