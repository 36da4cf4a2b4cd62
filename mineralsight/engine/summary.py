"""Scene-level numbers: image diagnostics, mask sanity checks, per-material fractions."""

from __future__ import annotations

import logging

import numpy as np

from mineralsight.engine.features import PixelFeatureFrame
from mineralsight.engine.labels import MaterialType, PixelLabelGrid
from mineralsight.engine.mask import SampleMask
from mineralsight.engine.materials import MaterialsConfig
from mineralsight.engine.results import (
    CrystalResult,
    GemResult,
    ImageDiagnostics,
    MaskValidation,
    MetalResult,
)

logger = logging.getLogger(__name__)

# Focus = mean squared gradient / 255^2, scaled so moderate texture saturates at 1
_FOCUS_SCALE = 10.0
_CLIP_LOW = 5
_CLIP_HIGH = 250

# Presence score multipliers (score = min(1, fraction * m))
_NOBLE_MULTIPLIER = 15.0
_PGM_MULTIPLIER = 12.0
_METAL_MULTIPLIER = 10.0
_CRYSTAL_MULTIPLIER = 5.0
_GEM_MULTIPLIER = 8.0


def compute_diagnostics(features: PixelFeatureFrame, mask: SampleMask) -> ImageDiagnostics:
    """Focus and clipping measured on sample pixels; fractions over the whole frame."""
    total = mask.width * mask.height
    sample = mask.is_sample
    count = mask.sample_count
    if count == 0 or total == 0:
        return ImageDiagnostics(focus_score=0.0, clipping_fraction=0.0, foreground_fraction=0.0)

    gray = np.floor(features.gray).astype(np.int64)
    clipped = int(np.count_nonzero(sample & ((gray < _CLIP_LOW) | (gray > _CLIP_HIGH))))

    grad_sum = 0
    if mask.width >= 3 and mask.height >= 3:
        gx = gray[1:-1, 2:] - gray[1:-1, :-2]
        gy = gray[2:, 1:-1] - gray[:-2, 1:-1]
        interior = sample[1:-1, 1:-1]
        grad_sum = int(np.sum((gx * gx + gy * gy)[interior]))
    focus = min(1.0, grad_sum / count / (255.0 * 255.0) * _FOCUS_SCALE)

    return ImageDiagnostics(
        focus_score=focus,
        clipping_fraction=clipped / total,
        foreground_fraction=count / total,
    )


def validate_mask(mask: SampleMask) -> MaskValidation:
    """Flag masks whose cleanup discarded more than it kept."""
    stats = mask.stats
    kept = mask.sample_count
    warnings: list[str] = []
    if stats.border_removed_pixels > 0 and stats.border_removed_pixels > kept:
        share = stats.border_removed_pixels / max(stats.candidate_pixels, 1)
        warnings.append(
            f"{share:.0%} of candidate foreground touched the frame edge and was discarded; "
            "the sample may extend beyond the field of view"
        )
    if stats.small_region_removed_pixels > 0 and stats.small_region_removed_pixels > kept:
        warnings.append(
            f"Foreground is fragmented: {stats.small_region_removed_pixels} px in regions "
            "below the minimum size were discarded"
        )
    return MaskValidation(warnings=tuple(warnings))


def _score(fraction: float, multiplier: float) -> float:
    return min(1.0, fraction * multiplier)


def summarize_materials(
    labels: PixelLabelGrid, materials: MaterialsConfig
) -> tuple[list[MetalResult], list[CrystalResult], list[GemResult]]:
    """Fraction of the sample and presence score for every configured material."""
    counts = {mid.lower(): n for mid, n in labels.material_counts().items()}
    sample = labels.sample_count

    def fraction(material_id: str) -> float:
        return counts.get(material_id.lower(), 0) / sample if sample else 0.0

    metals = []
    for m in materials.of_type(MaterialType.METAL):
        f = fraction(m.id)
        if m.is_noble:
            multiplier = _NOBLE_MULTIPLIER
        elif m.is_pgm:
            multiplier = _PGM_MULTIPLIER
        else:
            multiplier = _METAL_MULTIPLIER
        metals.append(
            MetalResult(
                id=m.id,
                name=m.name,
                group=m.group,
                fraction=f,
                ppm=f * 1e6 if f > 0 else None,
                score=_score(f, multiplier),
            )
        )
    crystals = [
        CrystalResult(id=m.id, name=m.name, fraction=fraction(m.id), score=_score(fraction(m.id), _CRYSTAL_MULTIPLIER))
        for m in materials.of_type(MaterialType.CRYSTAL)
    ]
    gems = [
        GemResult(id=m.id, name=m.name, fraction=fraction(m.id), score=_score(fraction(m.id), _GEM_MULTIPLIER))
        for m in materials.of_type(MaterialType.GEM)
    ]
    return metals, crystals, gems
