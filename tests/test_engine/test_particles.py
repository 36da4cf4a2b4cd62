"""Tests for particle extraction and per-particle metrics."""

import numpy as np
import pytest

from mineralsight.engine.config import ParticleConfig
from mineralsight.engine.features import PixelFeatureExtractor
from mineralsight.engine.labeling import PixelClassifier
from mineralsight.engine.particles import ParticleExtractor
from mineralsight.engine.segmentation import SegmentationEngine
from tests.conftest import make_label_grid

AU, PT = 0, 1


def _two_blobs():
    idx = np.full((8, 8), -1)
    idx[1:3, 1:3] = AU
    idx[1:3, 3:5] = PT
    idx[5, 5] = AU
    return make_label_grid(idx, ["Au", "Pt"], confidence=0.8)


def test_particles_split_by_material():
    result = ParticleExtractor().extract(_two_blobs())
    assert [(p.particle_id, p.material_id, p.area_px) for p in result.particles] == [
        (1, "Au", 4),
        (2, "Pt", 4),
        (3, "Au", 1),
    ]
    assert result.particle_map[1, 3] == 2
    assert result.particle_map[0, 0] == 0


def test_particle_ids_follow_raster_order():
    idx = np.full((6, 6), -1)
    # Pt comes first in the vocabulary but sits lower in the frame
    idx[4, 0:2] = 0
    idx[1, 4:6] = 1
    result = ParticleExtractor().extract(make_label_grid(idx, ["Pt", "Au"]))
    assert [p.material_id for p in result.particles] == ["Au", "Pt"]


def test_small_particles_flagged_invalid():
    result = ParticleExtractor().extract(_two_blobs())
    assert [p.is_valid for p in result.particles] == [True, True, False]
    assert len(result.valid_particles) == 2


def test_ungrouped_particles_report_composition():
    result = ParticleExtractor(ParticleConfig(group_by_material=False)).extract(_two_blobs())
    mixed = result.particles[0]
    assert mixed.area_px == 8
    assert mixed.is_mixed
    assert mixed.composition == {"Au": 0.5, "Pt": 0.5}
    # tie resolves to the first vocabulary entry
    assert mixed.material_id == "Au"


def test_diagonal_pixels_are_connected():
    idx = np.full((5, 5), -1)
    idx[1, 1] = AU
    idx[2, 2] = AU
    idx[3, 3] = AU
    result = ParticleExtractor().extract(make_label_grid(idx, ["Au"]))
    assert len(result.particles) == 1
    assert result.particles[0].area_px == 3


def test_square_metrics():
    idx = np.full((10, 10), -1)
    idx[2:6, 3:7] = AU
    particle = ParticleExtractor(ParticleConfig(um_per_px=0.5)).extract(
        make_label_grid(idx, ["Au"], confidence=0.75)
    ).particles[0]
    assert particle.bbox == (3, 2, 4, 4)
    assert particle.centroid == (4, 3)
    assert particle.perimeter == 12
    assert particle.circularity == pytest.approx(1.0)
    assert particle.aspect_ratio == pytest.approx(1.0)
    assert particle.confidence == pytest.approx(0.75)
    assert particle.confidence_std == pytest.approx(0.0)
    assert particle.area_um2 == pytest.approx(4.0)


def test_elongated_particle_aspect_ratio():
    idx = np.full((5, 20), -1)
    idx[2, 2:18] = AU
    particle = ParticleExtractor().extract(make_label_grid(idx, ["Au"])).particles[0]
    assert particle.bbox == (2, 2, 16, 1)
    assert particle.minor_axis_length == pytest.approx(0.0, abs=1e-6)
    assert particle.aspect_ratio == pytest.approx(particle.major_axis_length)
    assert particle.aspect_ratio > 10


def test_unlabeled_sample_pixels_form_no_particle():
    idx = np.full((4, 4), -1)
    sample = np.ones((4, 4), dtype=bool)
    result = ParticleExtractor().extract(make_label_grid(idx, ["Au"], is_sample=sample))
    assert result.particles == []


def test_gold_patch_single_particle(gold_patch_image, gold_materials):
    features = PixelFeatureExtractor().extract(gold_patch_image)
    mask = SegmentationEngine().segment(features)
    labels = PixelClassifier(gold_materials).classify_frame(features, mask)
    particles = ParticleExtractor().extract(labels).particles
    assert len(particles) == 1
    p = particles[0]
    assert (p.material_id, p.area_px, p.bbox, p.centroid) == ("Au", 2500, (75, 75, 50, 50), (99, 99))
    assert p.perimeter == 196
    assert p.mean_h == pytest.approx(49.74, abs=0.01)
    assert p.area_um2 is None
