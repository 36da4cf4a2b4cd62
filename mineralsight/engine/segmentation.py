"""Adaptive sample/background segmentation.

threshold = clamp(mean + k * std, min, max) over the composite index, then:
binarize -> drop frame-touching regions -> drop small regions -> close small holes.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import SegmentationConfig
from mineralsight.engine.features import PixelFeatureExtractor, PixelFeatureFrame
from mineralsight.engine.mask import SampleMask, SegmentationStats
from mineralsight.utils.imaging import blend
from mineralsight.utils.morphology import (
    clear_border,
    fill_small_holes,
    filter_small_components,
    label_components,
)

logger = logging.getLogger(__name__)


class SegmentationEngine:
    def __init__(
        self,
        config: SegmentationConfig | None = None,
        extractor: PixelFeatureExtractor | None = None,
    ) -> None:
        self.config = config or SegmentationConfig()
        self.extractor = extractor or PixelFeatureExtractor(self.config)

    def build_mask(self, image: object) -> tuple[SampleMask, NDArray[np.uint8]]:
        """Segment ``image``; returns the mask and its preview overlay."""
        features = self.extractor.extract(image)
        mask = self.segment(features)
        return mask, self.render_preview(features.rgb, mask)

    def segment(self, features: PixelFeatureFrame) -> SampleMask:
        cfg = self.config
        index = features.composite_index
        mean, std, threshold = self.threshold(index, features.valid)

        candidates = index >= threshold
        candidate_pixels = int(np.count_nonzero(candidates))

        grid, border_removed = clear_border(candidates)
        grid, small_removed = filter_small_components(
            grid, cfg.min_region_size, keep_only_largest=cfg.keep_only_largest
        )
        grid, holes_filled = fill_small_holes(grid, cfg.max_hole_size)
        _, components = label_components(grid)

        stats = SegmentationStats(
            background_rgb=features.background_rgb,
            index_mean=mean,
            index_std=std,
            threshold=threshold,
            candidate_pixels=candidate_pixels,
            border_removed_pixels=border_removed,
            small_region_removed_pixels=small_removed,
            holes_filled_pixels=holes_filled,
            component_count=components,
        )
        mask = SampleMask(
            width=features.width,
            height=features.height,
            is_sample=grid,
            composite_index=index,
            gradient_magnitude=features.gradient,
            threshold=threshold,
            stats=stats,
        )
        logger.info(
            "Segmentation: threshold=%.1f (mean=%.1f std=%.1f), %d sample pixels in %d regions (%.1f%%)",
            threshold,
            mean,
            std,
            mask.sample_count,
            components,
            mask.foreground_fraction * 100,
        )
        return mask

    def threshold(
        self, index: NDArray[np.float64], valid: NDArray[np.bool_]
    ) -> tuple[float, float, float]:
        """(mean, std, clamped threshold) over the valid pixels."""
        cfg = self.config
        values = index[valid]
        if values.size == 0:
            mean, std = 0.0, 0.0
        else:
            mean, std = float(values.mean()), float(values.std())
        raw = mean + cfg.std_multiplier * std
        return mean, std, float(min(cfg.max_threshold, max(cfg.min_threshold, raw)))

    def render_preview(self, rgb: NDArray[np.uint8], mask: SampleMask) -> NDArray[np.uint8]:
        """Sample pixels untouched, background tinted."""
        cfg = self.config
        preview = rgb.copy()
        background = ~mask.is_sample
        preview[background] = blend(rgb[background], cfg.preview_color, cfg.preview_alpha)
        return preview
