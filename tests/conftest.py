"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from mineralsight.engine.labels import MaterialType, PixelLabelGrid, infer_material_type
from mineralsight.engine.materials import MaterialsConfig, parse_materials
from mineralsight.engine.results import ParticleRecord
from mineralsight.utils.imaging import to_hsv

# Synthetic frames

BLANK_GRAY = 128
LIGHT_BACKGROUND = (230, 230, 230)
# H ~ 49.7 deg, S ~ 0.50, V = 0.60
GOLD_RGB = (153, 140, 77)

GOLD_ONLY_DOC = {
    "materials": {
        "metais": [
            {
                "id": "Au",
                "nome": "Ouro",
                "grupo": "nobre",
                "optico": {"cor_hsv": {"h": [30, 80], "s": [0.18, 1.0], "v": [0.35, 1.0]}},
            }
        ]
    }
}


def make_blank_image(size: int = 100, value: int = BLANK_GRAY) -> np.ndarray:
    return np.full((size, size, 3), value, dtype=np.uint8)


def make_patch_image(
    size: int = 200,
    patches: list[tuple[int, int, int, int]] | None = None,
    color: tuple[int, int, int] = GOLD_RGB,
    background: tuple[int, int, int] = LIGHT_BACKGROUND,
) -> np.ndarray:
    """Light frame with colored rectangles given as (x, y, width, height)."""
    img = np.empty((size, size, 3), dtype=np.uint8)
    img[:] = background
    for x, y, w, h in patches if patches is not None else [(75, 75, 50, 50)]:
        img[y : y + h, x : x + w] = color
    return img


def make_label_grid(
    material_index,
    material_ids: list[str],
    confidence: float | np.ndarray = 0.9,
    is_sample: np.ndarray | None = None,
    rgb: np.ndarray | None = None,
    material_types: list[MaterialType] | None = None,
) -> PixelLabelGrid:
    """Label grid built directly from a material-index array (-1 = unlabeled)."""
    idx = np.array(material_index, dtype=np.int16)
    h, w = idx.shape
    sample = (idx >= 0) if is_sample is None else np.array(is_sample, dtype=bool)
    conf = np.where(sample, np.broadcast_to(np.asarray(confidence, dtype=np.float64), (h, w)), 0.0)
    if rgb is None:
        rgb = np.full((h, w, 3), 120, dtype=np.uint8)
    types = material_types or [infer_material_type(m) for m in material_ids]
    return PixelLabelGrid(
        width=w,
        height=h,
        material_ids=tuple(material_ids),
        material_types=tuple(types),
        is_sample=sample,
        material_index=idx,
        confidence=conf,
        raw_score=conf.copy(),
        heuristic_score=conf.copy(),
        secondary_score=conf.copy(),
        rgb=rgb,
        hsv=to_hsv(rgb),
        particle_id=np.zeros((h, w), dtype=np.int32),
    )


def make_particle(particle_id: int = 1, material_id: str = "Au", confidence: float = 0.9) -> ParticleRecord:
    return ParticleRecord(
        particle_id=particle_id,
        material_id=material_id,
        material_type=MaterialType.METAL,
        confidence=confidence,
        area_px=25,
        centroid=(2, 2),
        bbox=(0, 0, 5, 5),
        perimeter=16,
        circularity=0.9,
        aspect_ratio=1.0,
        major_axis_length=5.7,
        minor_axis_length=5.7,
        composition={material_id: 1.0},
    )


@pytest.fixture
def blank_image() -> np.ndarray:
    return make_blank_image()


@pytest.fixture
def gold_patch_image() -> np.ndarray:
    return make_patch_image()


@pytest.fixture
def gold_materials() -> MaterialsConfig:
    return parse_materials(GOLD_ONLY_DOC)
