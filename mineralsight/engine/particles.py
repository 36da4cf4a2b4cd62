"""Particle extraction over 8-connected clusters of same-material sample pixels."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.config import ParticleConfig
from mineralsight.engine.labels import PixelLabelGrid
from mineralsight.engine.results import ParticleRecord
from mineralsight.utils.geometry import aspect_ratio, bounding_box, circularity, principal_axes
from mineralsight.utils.morphology import boundary_pixels, label_components, raster_ordered

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ParticleExtraction:
    particles: list[ParticleRecord]
    # Particle id per pixel, 0 = none
    particle_map: NDArray[np.int32]

    @property
    def valid_particles(self) -> list[ParticleRecord]:
        return [p for p in self.particles if p.is_valid]


class ParticleExtractor:
    def __init__(self, config: ParticleConfig | None = None) -> None:
        self.config = config or ParticleConfig()

    def extract(self, labels: PixelLabelGrid) -> ParticleExtraction:
        component_map, count = self._components(labels)
        if count == 0:
            return ParticleExtraction(particles=[], particle_map=component_map)

        flat = component_map.ravel()
        pixels = np.flatnonzero(flat)
        pixels = pixels[np.argsort(flat[pixels], kind="stable")]
        starts = np.searchsorted(flat[pixels], np.arange(1, count + 2))

        particles = [
            self._describe(labels, component_map, pid, pixels[starts[pid - 1] : starts[pid]])
            for pid in range(1, count + 1)
        ]
        logger.info(
            "Particles: %d extracted (%d valid)",
            len(particles),
            sum(1 for p in particles if p.is_valid),
        )
        return ParticleExtraction(particles=particles, particle_map=component_map)

    def _components(self, labels: PixelLabelGrid) -> tuple[NDArray[np.int32], int]:
        classified = labels.is_sample & (labels.material_index >= 0)
        if not self.config.group_by_material:
            return label_components(classified)

        component_map = np.zeros((labels.height, labels.width), dtype=np.int32)
        count = 0
        for k in range(len(labels.material_ids)):
            grid = classified & (labels.material_index == k)
            if not grid.any():
                continue
            comp, n = label_components(grid)
            inside = comp > 0
            component_map[inside] = comp[inside] + count
            count += n
        if count > 1:
            component_map = raster_ordered(component_map, count)
        return component_map, count

    def _describe(
        self,
        labels: PixelLabelGrid,
        component_map: NDArray[np.int32],
        particle_id: int,
        pixels: NDArray[np.int64],
    ) -> ParticleRecord:
        ys, xs = np.divmod(pixels, labels.width)
        area = len(pixels)
        bbox = bounding_box(xs, ys)
        bx, by, bw, bh = bbox

        crop = component_map[by : by + bh, bx : bx + bw] == particle_id
        perimeter = int(np.count_nonzero(boundary_pixels(crop)))
        major, minor = principal_axes(xs, ys)

        material_index = labels.material_index.ravel()[pixels]
        votes = np.bincount(material_index, minlength=len(labels.material_ids))
        dominant = int(np.argmax(votes))
        composition = {
            labels.material_ids[k]: float(votes[k] / area) for k in np.flatnonzero(votes)
        }

        conf = labels.confidence.ravel()[pixels]
        hsv = labels.hsv.reshape(-1, 3)[pixels]
        um = self.config.um_per_px

        return ParticleRecord(
            particle_id=particle_id,
            material_id=labels.material_ids[dominant],
            material_type=labels.material_types[dominant],
            confidence=float(conf.mean()),
            area_px=area,
            centroid=(int(xs.sum() // area), int(ys.sum() // area)),
            bbox=bbox,
            perimeter=perimeter,
            circularity=circularity(area, perimeter),
            aspect_ratio=aspect_ratio(major, minor),
            major_axis_length=major,
            minor_axis_length=minor,
            composition=composition,
            confidence_std=float(conf.std()),
            score_heuristic=float(labels.heuristic_score.ravel()[pixels].mean()),
            score_secondary=float(labels.secondary_score.ravel()[pixels].mean()),
            score_combined=float(labels.raw_score.ravel()[pixels].mean()),
            mean_h=float(hsv[:, 0].mean()),
            mean_s=float(hsv[:, 1].mean()),
            mean_v=float(hsv[:, 2].mean()),
            area_um2=area * um * um if um else None,
            is_valid=area >= self.config.min_particle_pixels,
        )
