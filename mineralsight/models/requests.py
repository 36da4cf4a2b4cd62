"""API request models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from mineralsight.engine.config import PipelineConfig


class AnalysisOptions(BaseModel):
    mask_sensitivity: float | None = Field(default=None, ge=0.0, le=1.0)
    min_region_size: int | None = Field(default=None, ge=0)
    keep_only_largest: bool | None = None
    max_hole_size: int | None = Field(default=None, ge=0)
    heuristic_weight: float | None = Field(default=None, ge=0.0)
    secondary_weight: float | None = Field(default=None, ge=0.0)
    min_pixel_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    min_particle_pixels: int | None = Field(default=None, ge=1)
    group_by_material: bool | None = None
    um_per_px: float | None = Field(default=None, gt=0.0)

    def apply(self, config: PipelineConfig) -> PipelineConfig:
        return config.with_overrides(**self.model_dump(exclude_none=True))


class AnalyzeRequest(BaseModel):
    image_base64: str = Field(..., description="Base64 PNG/JPEG of the microscope frame")
    image_name: str | None = Field(default=None, description="Original file name, echoed in the result")
    materials: dict[str, Any] | None = Field(
        default=None,
        description="Materials document ({materials: {metais, cristais, gemas}}); server default if omitted",
    )
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    include_particles: bool = True


class SelectiveRenderRequest(AnalyzeRequest):
    target_material: str = Field(..., description="Material id to highlight, e.g. 'Au'")
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    mode: Literal["overlay", "xray", "au_pgm", "background"] = "overlay"


class PhaseMapRequest(AnalyzeRequest):
    target_material: str | None = Field(
        default=None, description="Render a confidence heatmap for this material instead of the phase map"
    )
    opacity: float = Field(default=0.6, ge=0.0, le=1.0)
