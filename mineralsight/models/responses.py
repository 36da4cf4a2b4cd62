"""API response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from mineralsight.engine.results import FullSceneAnalysis, ParticleRecord
from mineralsight.engine.selective import SelectiveConfidenceSummary


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    stages_registered: int = 0
    secondary_model: str = ""


class ParticleModel(BaseModel):
    particle_id: int
    material_id: str
    material_type: str
    confidence: float
    area_px: int
    area_um2: float | None = None
    centroid: tuple[int, int]
    bbox: tuple[int, int, int, int]
    perimeter: int
    circularity: float
    aspect_ratio: float
    major_axis_length: float
    minor_axis_length: float
    composition: dict[str, float] = Field(default_factory=dict)
    is_mixed: bool = False
    confidence_std: float = 0.0
    score_heuristic: float = 0.0
    score_secondary: float = 0.0
    score_combined: float = 0.0
    mean_hsv: tuple[float, float, float] = (0.0, 0.0, 0.0)
    is_valid: bool = True

    @classmethod
    def from_record(cls, p: ParticleRecord) -> ParticleModel:
        return cls(
            particle_id=p.particle_id,
            material_id=p.material_id,
            material_type=p.material_type.name.lower(),
            confidence=p.confidence,
            area_px=p.area_px,
            area_um2=p.area_um2,
            centroid=p.centroid,
            bbox=p.bbox,
            perimeter=p.perimeter,
            circularity=p.circularity,
            aspect_ratio=p.aspect_ratio,
            major_axis_length=p.major_axis_length,
            minor_axis_length=p.minor_axis_length,
            composition=dict(p.composition),
            is_mixed=p.is_mixed,
            confidence_std=p.confidence_std,
            score_heuristic=p.score_heuristic,
            score_secondary=p.score_secondary,
            score_combined=p.score_combined,
            mean_hsv=(p.mean_h, p.mean_s, p.mean_v),
            is_valid=p.is_valid,
        )


class AlertModel(BaseModel):
    severity: str
    code: str
    message: str
    recommendation: str | None = None
    timestamp: datetime


class ConsistencyModel(BaseModel):
    alerts: list[AlertModel] = Field(default_factory=list)
    summary: str = ""
    is_consistent: bool = True
    has_critical_alerts: bool = False
    has_error_alerts: bool = False
    has_warning_alerts: bool = False
    suggested_quality_status: str = "Official"


class DiagnosticsModel(BaseModel):
    focus_score: float = 0.0
    clipping_fraction: float = 0.0
    foreground_fraction: float = 0.0


class MaterialFractionModel(BaseModel):
    id: str
    name: str
    group: str | None = None
    fraction: float = 0.0
    ppm: float | None = None
    score: float = 0.0


class AnalyzeResponse(BaseModel):
    analysis_id: str
    image_name: str | None = None
    captured_at: datetime
    width: int
    height: int
    quality_status: str
    diagnostics: DiagnosticsModel
    metals: list[MaterialFractionModel] = Field(default_factory=list)
    crystals: list[MaterialFractionModel] = Field(default_factory=list)
    gems: list[MaterialFractionModel] = Field(default_factory=list)
    particle_count: int = 0
    particles: list[ParticleModel] = Field(default_factory=list)
    consistency: ConsistencyModel
    mask_warnings: list[str] = Field(default_factory=list)
    processing_time_ms: float = 0.0

    @classmethod
    def from_scene(
        cls, scene: FullSceneAnalysis, processing_time_ms: float = 0.0, include_particles: bool = True
    ) -> AnalyzeResponse:
        summary = scene.summary
        consistency = scene.consistency
        return cls(
            analysis_id=str(summary.id),
            image_name=summary.image_path,
            captured_at=summary.captured_at,
            width=scene.width,
            height=scene.height,
            quality_status=summary.quality_status.value,
            diagnostics=DiagnosticsModel(
                focus_score=summary.diagnostics.focus_score,
                clipping_fraction=summary.diagnostics.clipping_fraction,
                foreground_fraction=summary.diagnostics.foreground_fraction,
            ),
            metals=[
                MaterialFractionModel(id=m.id, name=m.name, group=m.group, fraction=m.fraction, ppm=m.ppm, score=m.score)
                for m in summary.metals
            ],
            crystals=[
                MaterialFractionModel(id=c.id, name=c.name, fraction=c.fraction, score=c.score)
                for c in summary.crystals
            ],
            gems=[
                MaterialFractionModel(id=g.id, name=g.name, fraction=g.fraction, score=g.score)
                for g in summary.gems
            ],
            particle_count=len(summary.particles),
            particles=[ParticleModel.from_record(p) for p in summary.particles] if include_particles else [],
            consistency=ConsistencyModel(
                alerts=[
                    AlertModel(
                        severity=a.severity.name.lower(),
                        code=a.code,
                        message=a.message,
                        recommendation=a.recommendation,
                        timestamp=a.timestamp,
                    )
                    for a in consistency.alerts
                ],
                summary=consistency.summary,
                is_consistent=consistency.is_consistent,
                has_critical_alerts=consistency.has_critical_alerts,
                has_error_alerts=consistency.has_error_alerts,
                has_warning_alerts=consistency.has_warning_alerts,
                suggested_quality_status=consistency.suggested_quality_status.value,
            ),
            mask_warnings=list(scene.mask_validation.warnings),
            processing_time_ms=processing_time_ms,
        )


class SelectiveSummaryModel(BaseModel):
    target_material: str
    total_target_pixels: int = 0
    high_confidence_pixels: int = 0
    low_confidence_pixels: int = 0
    target_fraction_of_sample: float = 0.0
    ppm_estimated: float = 0.0
    particle_count: int = 0

    @classmethod
    def from_summary(cls, s: SelectiveConfidenceSummary) -> SelectiveSummaryModel:
        return cls(
            target_material=s.target_material,
            total_target_pixels=s.total_target_pixels,
            high_confidence_pixels=s.high_confidence_pixels,
            low_confidence_pixels=s.low_confidence_pixels,
            target_fraction_of_sample=s.target_fraction_of_sample,
            ppm_estimated=s.ppm_estimated,
            particle_count=s.particle_count,
        )


class RenderResponse(BaseModel):
    image_base64: str | None = None
    width: int = 0
    height: int = 0
    summary: SelectiveSummaryModel | None = None
    processing_time_ms: float = 0.0
