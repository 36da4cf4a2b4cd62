"""Tests for feature extraction and sample/background segmentation."""

import numpy as np
import pytest

from mineralsight.engine.config import SegmentationConfig
from mineralsight.engine.errors import InvalidInputError
from mineralsight.engine.features import PixelFeatureExtractor, validate_image
from mineralsight.engine.segmentation import SegmentationEngine
from mineralsight.engine.summary import validate_mask
from mineralsight.utils.morphology import component_sizes, label_components
from tests.conftest import GOLD_RGB, LIGHT_BACKGROUND, make_blank_image, make_patch_image


class TestFeatures:
    def test_background_estimate_uses_frame_band(self):
        img = make_patch_image()
        frame = PixelFeatureExtractor().extract(img)
        assert frame.background_rgb == pytest.approx(LIGHT_BACKGROUND)

    def test_composite_index_of_patch(self):
        frame = PixelFeatureExtractor().extract(make_patch_image())
        # (255 - gray) * 0.5 + S * 30, boosted x1.2 for far-from-background color
        assert frame.composite_index[100, 100] == pytest.approx(88.86, abs=0.05)
        # near-background pixels damped x0.3
        assert frame.composite_index[10, 10] == pytest.approx(3.75)

    def test_blown_out_pixels_are_excluded(self):
        img = make_blank_image(value=255)
        frame = PixelFeatureExtractor().extract(img)
        assert not frame.valid.any()
        assert frame.composite_index.max() == 0.0

    def test_sample_accessor(self):
        frame = PixelFeatureExtractor().extract(make_patch_image())
        px = frame.sample(100, 100)
        assert (px.r, px.g, px.b) == GOLD_RGB
        assert px.h == pytest.approx(49.74, abs=0.01)
        with pytest.raises(IndexError):
            frame.sample(200, 0)


class TestInputValidation:
    @pytest.mark.parametrize(
        "image",
        [
            None,
            np.zeros((0, 10, 3), dtype=np.uint8),
            np.zeros((10, 10), dtype=np.uint8),
            np.zeros((10, 10, 3), dtype=np.float64),
        ],
    )
    def test_rejects_bad_images(self, image):
        with pytest.raises(InvalidInputError):
            validate_image(image)

    def test_drops_alpha_channel(self):
        rgba = np.zeros((4, 4, 4), dtype=np.uint8)
        assert validate_image(rgba).shape == (4, 4, 3)

    def test_build_mask_raises_for_missing_image(self):
        with pytest.raises(InvalidInputError):
            SegmentationEngine().build_mask(None)


class TestSegmentation:
    def test_blank_image_yields_empty_mask(self, blank_image):
        mask, preview = SegmentationEngine().build_mask(blank_image)
        assert mask.sample_count == 0
        assert mask.foreground_fraction == 0.0
        assert preview.shape == blank_image.shape

    def test_black_image_yields_empty_mask(self):
        mask, _ = SegmentationEngine().build_mask(make_blank_image(value=0))
        assert mask.sample_count == 0

    def test_gold_patch_is_segmented_exactly(self, gold_patch_image):
        mask, _ = SegmentationEngine().build_mask(gold_patch_image)
        assert mask.sample_count == 2500
        assert mask.foreground_fraction == pytest.approx(0.0625)
        assert mask.is_sample[75:125, 75:125].all()
        assert mask.threshold == 30.0
        assert mask.stats.component_count == 1

    def test_border_invariant(self):
        rng = np.random.default_rng(7)
        img = rng.integers(0, 256, size=(80, 80, 3), dtype=np.uint8)
        img[20:60, 20:60] = GOLD_RGB
        mask, _ = SegmentationEngine().build_mask(img)
        grid = mask.is_sample
        assert not grid[0, :].any() and not grid[-1, :].any()
        assert not grid[:, 0].any() and not grid[:, -1].any()

    def test_region_size_invariant(self):
        img = make_patch_image(patches=[(20, 20, 30, 30), (120, 120, 8, 8), (150, 30, 12, 12)])
        mask, _ = SegmentationEngine().build_mask(img)
        labels, count = label_components(mask.is_sample)
        sizes = component_sizes(labels, count)[1:]
        assert count == 2
        assert (sizes >= 100).all()
        assert mask.stats.small_region_removed_pixels == 64

    def test_keep_only_largest(self):
        img = make_patch_image(patches=[(20, 20, 20, 20), (120, 120, 12, 12)])
        engine = SegmentationEngine(SegmentationConfig(keep_only_largest=True))
        mask, _ = engine.build_mask(img)
        assert mask.sample_count == 400

    def test_small_holes_are_filled(self):
        img = make_patch_image(patches=[(50, 50, 30, 30)])
        img[63:66, 63:66] = LIGHT_BACKGROUND
        mask, _ = SegmentationEngine().build_mask(img)
        assert mask.sample_count == 900
        assert mask.stats.holes_filled_pixels == 9

    def test_large_holes_stay_open(self):
        img = make_patch_image(patches=[(50, 50, 40, 40)])
        img[60:70, 60:70] = LIGHT_BACKGROUND
        mask, _ = SegmentationEngine().build_mask(img)
        assert mask.sample_count == 1600 - 100

    def test_sample_touching_frame_is_discarded(self):
        img = make_patch_image(patches=[(0, 0, 50, 50)])
        mask, _ = SegmentationEngine().build_mask(img)
        assert mask.sample_count == 0
        assert mask.stats.border_removed_pixels >= 2500
        assert len(validate_mask(mask).warnings) == 1

    def test_deterministic(self, gold_patch_image):
        engine = SegmentationEngine()
        a, _ = engine.build_mask(gold_patch_image)
        b, _ = engine.build_mask(gold_patch_image)
        assert np.array_equal(a.is_sample, b.is_sample)
        assert np.array_equal(a.composite_index, b.composite_index)

    def test_preview_tints_background_only(self, gold_patch_image):
        mask, preview = SegmentationEngine().build_mask(gold_patch_image)
        assert tuple(preview[100, 100]) == GOLD_RGB
        assert tuple(preview[5, 5]) == (115, 165, 215)


class TestThreshold:
    def test_clamped_high(self):
        engine = SegmentationEngine()
        index = np.full((4, 4), 500.0)
        assert engine.threshold(index, np.ones((4, 4), dtype=bool))[2] == 180.0

    def test_no_valid_pixels_uses_floor(self):
        engine = SegmentationEngine()
        index = np.full((4, 4), 500.0)
        assert engine.threshold(index, np.zeros((4, 4), dtype=bool))[2] == 30.0

    def test_mean_plus_k_std(self):
        engine = SegmentationEngine(SegmentationConfig(std_multiplier=1.0))
        index = np.array([[40.0, 60.0], [40.0, 60.0]])
        mean, std, threshold = engine.threshold(index, np.ones((2, 2), dtype=bool))
        assert (mean, std, threshold) == (50.0, 10.0, 60.0)

    @pytest.mark.parametrize("sensitivity,k", [(0.0, 1.0), (0.5, 0.5), (1.0, 0.0), (3.0, 0.0)])
    def test_sensitivity_maps_to_multiplier(self, sensitivity, k):
        assert SegmentationConfig.from_sensitivity(sensitivity).std_multiplier == pytest.approx(k)


def test_mask_accessors(gold_patch_image):
    mask, _ = SegmentationEngine().build_mask(gold_patch_image)
    assert mask.index(3, 2) == 2 * 200 + 3
    assert mask.cell(100, 100).is_sample
    with pytest.raises(IndexError):
        mask.index(-1, 0)
    with pytest.raises(ValueError):
        mask.is_sample[0, 0] = True
