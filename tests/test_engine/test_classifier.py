"""Tests for HSV range scoring and the heuristic/stub classifiers."""

import numpy as np
import pytest

from mineralsight.engine.classifier import (
    OTHER_MATERIAL_ID,
    HeuristicClassifier,
    HeuristicStubClassifier,
    RangeClassifier,
    SecondaryClassifier,
    looks_like_gold,
    looks_like_pgm,
    range_scores,
)
from mineralsight.engine.config import ClassifierConfig
from mineralsight.engine.features import PixelBatch, PixelSample
from mineralsight.engine.materials import HsvRange, parse_materials
from tests.conftest import GOLD_RGB


def _batch(*colors):
    return PixelBatch.from_samples([PixelSample.from_rgb(*c) for c in colors])


def _scores(hsv, rng):
    return range_scores(np.array([hsv], dtype=np.float64), np.array([rng.as_row()]), ClassifierConfig())[0, 0]


class TestRangeScores:
    def test_inside_range_scores_one(self):
        assert _scores((50.0, 0.5, 0.6), HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0)) == pytest.approx(1.0)

    def test_hue_decays_linearly(self):
        # 30 degrees past the upper bound keeps half of the hue weight
        assert _scores((110.0, 0.5, 0.6), HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0)) == pytest.approx(0.8)

    def test_far_hue_contributes_nothing(self):
        assert _scores((200.0, 0.5, 0.6), HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0)) == pytest.approx(0.6)

    def test_saturation_decay(self):
        # 0.15 below s_min -> half of 0.3
        assert _scores((50.0, 0.03, 0.6), HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0)) == pytest.approx(0.85)

    @pytest.mark.parametrize("hue", [350.0, 0.0, 5.0])
    def test_wrapping_hue_inside(self, hue):
        assert _scores((hue, 0.8, 0.6), HsvRange(340, 10, 0.55, 1.0, 0.3, 0.9)) == pytest.approx(1.0)

    def test_wrapping_hue_outside(self):
        # 20 degrees past h_max=10
        score = _scores((30.0, 0.8, 0.6), HsvRange(340, 10, 0.55, 1.0, 0.3, 0.9))
        assert score == pytest.approx(0.4 * (1 - 20 / 60) + 0.6)


class TestShortcuts:
    def test_gold_color_detected(self):
        batch = _batch(GOLD_RGB, (140, 140, 140))
        assert looks_like_gold(batch.rgb, batch.hsv).tolist() == [True, False]

    def test_dark_brown_is_not_gold(self):
        batch = _batch((90, 70, 30))
        assert not looks_like_gold(batch.rgb, batch.hsv)[0]

    def test_neutral_gray_is_pgm(self):
        batch = _batch((140, 140, 140), (252, 252, 252), (40, 40, 40), GOLD_RGB)
        assert looks_like_pgm(batch.rgb, batch.hsv).tolist() == [True, False, False, False]


class TestRangeClassifier:
    def test_fallback_column_appended(self):
        clf = RangeClassifier([("Au", HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0))])
        assert clf.material_ids == ("Au", OTHER_MATERIAL_ID)
        scores = clf.raw_scores(_batch(GOLD_RGB))
        assert scores.shape == (1, 2)
        assert scores[0, 1] == pytest.approx(0.3)

    def test_probabilities_normalized(self):
        clf = RangeClassifier([("Au", HsvRange(30, 80, 0.18, 1.0, 0.35, 1.0))])
        result = clf.classify(PixelSample.from_rgb(*GOLD_RGB))
        assert result.material_id == "Au"
        assert result.confidence == pytest.approx(1 / 1.3)
        assert sum(result.probabilities.values()) == pytest.approx(1.0)

    def test_fallback_wins_when_nothing_matches(self):
        clf = RangeClassifier([("Esmeralda", HsvRange(120, 160, 0.45, 1.0, 0.3, 0.9))])
        result = clf.classify(PixelSample.from_rgb(20, 20, 20))
        assert result.material_id == OTHER_MATERIAL_ID


class TestHeuristicClassifier:
    def test_gold_only_config(self, gold_materials):
        clf = HeuristicClassifier(gold_materials)
        result = clf.classify_batch(_batch(GOLD_RGB)).result(0)
        assert result.material_id == "Au"
        assert result.confidence == pytest.approx(1 / 1.3)

    def test_gold_boost_raises_weak_range_score(self):
        doc = {"metais": [{"id": "Au", "optico": {"cor_hsv": {"h": [0, 20], "s": [0.9, 1.0], "v": [0.9, 1.0]}}}]}
        materials = parse_materials(doc)
        boosted = HeuristicClassifier(materials).raw_scores(_batch(GOLD_RGB))
        plain = HeuristicClassifier(materials, ClassifierConfig(use_metal_heuristics=False)).raw_scores(
            _batch(GOLD_RGB)
        )
        assert boosted[0, 0] == pytest.approx(0.85)
        assert plain[0, 0] < 0.85

    def test_pgm_boost(self):
        doc = {"metais": [{"id": "Pt", "optico": {"cor_hsv": {"h": [0, 360], "s": [0.5, 1.0], "v": [0.9, 1.0]}}}]}
        materials = parse_materials(doc)
        gray = _batch((140, 140, 140))
        assert HeuristicClassifier(materials).raw_scores(gray)[0, 0] == pytest.approx(0.7)
        no_boost = HeuristicClassifier(materials, ClassifierConfig(use_metal_heuristics=False))
        assert no_boost.raw_scores(gray)[0, 0] == pytest.approx(0.4)

    def test_empty_batch(self, gold_materials):
        empty = PixelBatch(rgb=np.zeros((0, 3), dtype=np.uint8), hsv=np.zeros((0, 3)))
        result = HeuristicClassifier(gold_materials).classify_batch(empty)
        assert len(result) == 0

    def test_stub_empty_batch(self):
        empty = PixelBatch(rgb=np.zeros((0, 3), dtype=np.uint8), hsv=np.zeros((0, 3)))
        result = HeuristicStubClassifier().classify_batch(empty)
        assert len(result) == 0
        assert result.probabilities.shape == (0, len(result.material_ids))


class TestStub:
    def test_identity(self):
        stub = HeuristicStubClassifier()
        assert not stub.is_using_real_model
        assert stub.model_info == "HVS-Heuristic-Stub-v1.0"
        assert isinstance(stub, SecondaryClassifier)

    def test_gold_tie_goes_to_first_candidate(self):
        result = HeuristicStubClassifier().classify(PixelSample.from_rgb(*GOLD_RGB))
        # Au and Sulfeto both score 1.0; first maximum wins
        assert result.material_id == "Au"
        assert result.probabilities["Au"] == pytest.approx(result.probabilities["Sulfeto"])
        assert result.confidence == pytest.approx(0.2324, abs=1e-3)

    def test_deterministic(self):
        stub = HeuristicStubClassifier()
        batch = _batch(GOLD_RGB, (140, 140, 140), (30, 60, 200))
        a = stub.classify_batch(batch)
        b = stub.classify_batch(batch)
        assert np.array_equal(a.probabilities, b.probabilities)
