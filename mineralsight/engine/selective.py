"""Selective overlay rendering for a single target material.

The renderer runs its own connected-component pass over the target's
confident pixels and drops clusters below ``min_cluster_pixels``; isolated
misclassified pixels therefore never light up. This pass is independent of
particle extraction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import RenderConfig
from mineralsight.engine.labels import MaterialType, PixelLabelGrid
from mineralsight.engine.phase_map import material_color
from mineralsight.engine.results import ParticleRecord
from mineralsight.utils.imaging import blend, desaturate
from mineralsight.utils.morphology import component_sizes, label_components

logger = logging.getLogger(__name__)

TYPE_COLORS: dict[MaterialType, tuple[int, int, int]] = {
    MaterialType.METAL: (255, 220, 0),
    MaterialType.CRYSTAL: (0, 255, 0),
    MaterialType.GEM: (255, 0, 255),
}
DEFAULT_TARGET_COLOR = (255, 220, 0)

PGM_IDS = ("Pt", "Pd", "Rh", "Ir", "Ru", "Os")


@dataclass(frozen=True)
class SelectiveConfidenceSummary:
    target_material: str
    total_target_pixels: int = 0
    high_confidence_pixels: int = 0
    low_confidence_pixels: int = 0
    target_fraction_of_sample: float = 0.0
    ppm_estimated: float = 0.0
    particle_count: int = 0


class SelectiveOverlayRenderer:
    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()

    # --- noise filter ---

    def valid_target_mask(
        self,
        labels: PixelLabelGrid,
        target_material: str,
        confidence_threshold: float | None = None,
        shape: tuple[int, int] | None = None,
    ) -> NDArray[np.bool_]:
        """Confident target pixels belonging to clusters of at least ``min_cluster_pixels``."""
        threshold = self.config.confidence_threshold if confidence_threshold is None else confidence_threshold
        candidates = labels.material_mask(target_material, threshold)
        if shape is not None:
            candidates = candidates[: shape[0], : shape[1]]
        if not candidates.any():
            return candidates
        comp, count = label_components(candidates)
        keep = component_sizes(comp, count) >= self.config.min_cluster_pixels
        keep[0] = False
        return keep[comp]

    # --- input checks ---

    def _common_shape(
        self, base_image: NDArray[np.uint8] | None, labels: PixelLabelGrid | None, target: str | None
    ) -> tuple[int, int] | None:
        if base_image is None or labels is None:
            return None
        if target is None or not target.strip():
            return None
        if base_image.ndim != 3 or base_image.shape[2] < 3:
            logger.warning("Selective view skipped: base image shape %s", base_image.shape)
            return None
        h = min(base_image.shape[0], labels.height)
        w = min(base_image.shape[1], labels.width)
        if w <= 0 or h <= 0:
            return None
        if (w, h) != (labels.width, labels.height) or base_image.shape[:2] != (labels.height, labels.width):
            logger.debug("Selective view: size mismatch, rendering common %dx%d", w, h)
        return h, w

    def _target_color(
        self, labels: PixelLabelGrid, target: str, material_type: MaterialType | None
    ) -> tuple[int, int, int]:
        if material_type is None:
            idx = labels.index_of(target)
            material_type = labels.material_types[idx] if idx is not None else MaterialType.METAL
        return TYPE_COLORS.get(material_type, DEFAULT_TARGET_COLOR)

    # --- views ---

    def build_selective_view(
        self,
        base_image: NDArray[np.uint8] | None,
        labels: PixelLabelGrid | None,
        target_material: str | None,
        confidence_threshold: float | None = None,
        material_type: MaterialType | None = None,
    ) -> NDArray[np.uint8] | None:
        """Background tinted blue, valid target pixels highlighted, other sample untouched."""
        shape = self._common_shape(base_image, labels, target_material)
        if shape is None:
            return None
        h, w = shape
        base = np.ascontiguousarray(base_image[:h, :w, :3])
        valid = self.valid_target_mask(labels, target_material, confidence_threshold, shape)
        background = ~labels.is_sample[:h, :w]

        out = base.copy()
        out[background] = blend(base[background], self.config.background_color, self.config.background_alpha)
        color = self._target_color(labels, target_material, material_type)
        out[valid] = blend(base[valid], color, self.config.overlay_alpha)
        return out

    def build_selective_xray_view(
        self,
        base_image: NDArray[np.uint8] | None,
        labels: PixelLabelGrid | None,
        target_material: str | None,
        confidence_threshold: float | None = None,
        material_type: MaterialType | None = None,
    ) -> tuple[NDArray[np.uint8], SelectiveConfidenceSummary] | None:
        """Everything but the target in grayscale; target in two intensities.

        A target pixel is strong when its top-two heuristic probability gap is
        at least ``top2_margin``. Pixels labeled by the secondary classifier,
        and grids without probabilities, use confidence >= ``high_confidence``
        instead. Weaker pixels get a lighter tint.
        """
        shape = self._common_shape(base_image, labels, target_material)
        if shape is None:
            return None
        h, w = shape
        cfg = self.config
        base = np.ascontiguousarray(base_image[:h, :w, :3])
        valid = self.valid_target_mask(labels, target_material, confidence_threshold, shape)

        confident = labels.confidence[:h, :w] >= cfg.high_confidence
        margin = labels.top2_margin()
        if margin is None:
            strong = valid & confident
        else:
            # The probability gap only describes pixels whose label the heuristic chose
            by_margin = margin[:h, :w] >= cfg.top2_margin
            if labels.heuristic_won is not None:
                by_margin = np.where(labels.heuristic_won[:h, :w], by_margin, confident)
            strong = valid & by_margin
        weak = valid & ~strong

        out = desaturate(base)
        color = self._target_color(labels, target_material, material_type)
        out[strong] = blend(base[strong], color, cfg.xray_strong_alpha)
        out[weak] = blend(base[weak], cfg.uncertain_color or color, cfg.xray_weak_alpha)

        summary = self._summary(
            labels, target_material, total=int(np.count_nonzero(valid)), high=int(np.count_nonzero(strong))
        )
        return out, summary

    def build_selective_au_pgm_view(
        self,
        base_image: NDArray[np.uint8] | None,
        labels: PixelLabelGrid | None,
        confidence_threshold: float | None = None,
    ) -> NDArray[np.uint8] | None:
        """Gold and platinum-group metals highlighted together in their own colors."""
        shape = self._common_shape(base_image, labels, "Au")
        if shape is None:
            return None
        h, w = shape
        base = np.ascontiguousarray(base_image[:h, :w, :3])
        au = self.valid_target_mask(labels, "Au", confidence_threshold, shape)
        pgm = np.zeros((h, w), dtype=bool)
        for mid in PGM_IDS:
            pgm |= self.valid_target_mask(labels, mid, confidence_threshold, shape)

        out = base.copy()
        background = ~labels.is_sample[:h, :w]
        out[background] = blend(base[background], self.config.background_color, self.config.background_alpha)
        out[au] = blend(base[au], material_color("Au"), self.config.overlay_alpha)
        out[pgm] = blend(base[pgm], material_color("PGM"), self.config.overlay_alpha)
        return out

    def build_background_masked_view(
        self, base_image: NDArray[np.uint8] | None, labels: PixelLabelGrid | None
    ) -> NDArray[np.uint8] | None:
        """Sample pixels as captured, background tinted."""
        shape = self._common_shape(base_image, labels, "sample")
        if shape is None:
            return None
        h, w = shape
        base = np.ascontiguousarray(base_image[:h, :w, :3])
        out = base.copy()
        background = ~labels.is_sample[:h, :w]
        out[background] = blend(base[background], self.config.background_color, self.config.background_alpha)
        return out

    # --- statistics ---

    def summarize_target(
        self,
        labels: PixelLabelGrid,
        target_material: str,
        particles: list[ParticleRecord] | None = None,
    ) -> SelectiveConfidenceSummary:
        """Target pixel counts split at ``high_confidence``, plus particle count."""
        target = labels.material_mask(target_material)
        high = target & (labels.confidence >= self.config.high_confidence)
        return self._summary(
            labels,
            target_material,
            total=int(np.count_nonzero(target)),
            high=int(np.count_nonzero(high)),
            particles=particles,
        )

    def _summary(
        self,
        labels: PixelLabelGrid,
        target: str,
        total: int,
        high: int,
        particles: list[ParticleRecord] | None = None,
    ) -> SelectiveConfidenceSummary:
        sample = labels.sample_count
        fraction = total / sample if sample else 0.0
        wanted = target.lower()
        count = sum(1 for p in particles or [] if p.is_valid and p.material_id.lower() == wanted)
        return SelectiveConfidenceSummary(
            target_material=target,
            total_target_pixels=total,
            high_confidence_pixels=high,
            low_confidence_pixels=total - high,
            target_fraction_of_sample=fraction,
            ppm_estimated=fraction * 1e6,
            particle_count=count,
        )
