"""Analysis result types."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.labels import MaterialType, PixelLabelGrid
from mineralsight.engine.mask import SampleMask


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ParticleRecord:
    particle_id: int
    material_id: str
    material_type: MaterialType
    confidence: float
    area_px: int
    centroid: tuple[int, int]
    bbox: tuple[int, int, int, int]  # (x, y, width, height)
    perimeter: int
    circularity: float
    aspect_ratio: float
    major_axis_length: float
    minor_axis_length: float
    composition: dict[str, float] = field(default_factory=dict, compare=False, hash=False)
    confidence_std: float = 0.0
    score_heuristic: float = 0.0
    score_secondary: float = 0.0
    score_combined: float = 0.0
    mean_h: float = 0.0
    mean_s: float = 0.0
    mean_v: float = 0.0
    area_um2: float | None = None
    is_valid: bool = True

    @property
    def is_mixed(self) -> bool:
        return len(self.composition) > 1


@dataclass(frozen=True)
class ImageDiagnostics:
    focus_score: float = 0.0
    clipping_fraction: float = 0.0
    foreground_fraction: float = 0.0


@dataclass(frozen=True)
class MaskValidation:
    warnings: tuple[str, ...] = ()

    @property
    def has_anomalies(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class MetalResult:
    id: str
    name: str
    group: str
    fraction: float
    ppm: float | None
    score: float


@dataclass(frozen=True)
class CrystalResult:
    id: str
    name: str
    fraction: float
    score: float


@dataclass(frozen=True)
class GemResult:
    id: str
    name: str
    fraction: float
    score: float


class AlertSeverity(enum.IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2
    CRITICAL = 3


class QualityStatus(str, enum.Enum):
    OFFICIAL = "Official"
    PRELIMINARY = "Preliminary"
    INVALID = "Invalid"


@dataclass(frozen=True)
class ConsistencyAlert:
    severity: AlertSeverity
    code: str
    message: str
    recommendation: str | None = None
    timestamp: datetime = field(default_factory=_utcnow, compare=False)


@dataclass(frozen=True)
class ConsistencyCheckResult:
    alerts: tuple[ConsistencyAlert, ...] = ()
    summary: str = ""

    def _has(self, severity: AlertSeverity) -> bool:
        return any(a.severity == severity for a in self.alerts)

    @property
    def has_critical_alerts(self) -> bool:
        return self._has(AlertSeverity.CRITICAL)

    @property
    def has_error_alerts(self) -> bool:
        return self._has(AlertSeverity.ERROR)

    @property
    def has_warning_alerts(self) -> bool:
        return self._has(AlertSeverity.WARNING)

    @property
    def is_consistent(self) -> bool:
        return not (self.has_critical_alerts or self.has_error_alerts)

    @property
    def suggested_quality_status(self) -> QualityStatus:
        if self.has_critical_alerts:
            return QualityStatus.INVALID
        if self.has_error_alerts:
            return QualityStatus.PRELIMINARY
        return QualityStatus.OFFICIAL

    def codes(self) -> list[str]:
        return [a.code for a in self.alerts]


@dataclass
class SampleFullAnalysisResult:
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    image_path: str | None = None
    captured_at: datetime = field(default_factory=_utcnow)
    diagnostics: ImageDiagnostics = field(default_factory=ImageDiagnostics)
    metals: list[MetalResult] = field(default_factory=list)
    crystals: list[CrystalResult] = field(default_factory=list)
    gems: list[GemResult] = field(default_factory=list)
    particles: list[ParticleRecord] = field(default_factory=list)
    quality_status: QualityStatus = QualityStatus.PRELIMINARY

    def metal(self, material_id: str) -> MetalResult | None:
        wanted = material_id.lower()
        return next((m for m in self.metals if m.id.lower() == wanted), None)


@dataclass(frozen=True, eq=False)
class FullSceneAnalysis:
    """Everything produced for one frame. Built once; never updated."""

    summary: SampleFullAnalysisResult
    labels: PixelLabelGrid
    mask: SampleMask
    mask_preview: NDArray[np.uint8] | None
    consistency: ConsistencyCheckResult
    mask_validation: MaskValidation = field(default_factory=MaskValidation)

    @property
    def width(self) -> int:
        return self.mask.width

    @property
    def height(self) -> int:
        return self.mask.height

    @property
    def particles(self) -> list[ParticleRecord]:
        return self.summary.particles
