"""Frame-level pixel classification: heuristic + secondary + fusion -> PixelLabelGrid."""

from __future__ import annotations

import logging

import numpy as np

from mineralsight.engine.classifier import (
    HeuristicClassifier,
    HeuristicStubClassifier,
    SecondaryClassifier,
)
from mineralsight.engine.config import ClassifierConfig
from mineralsight.engine.errors import InvalidInputError
from mineralsight.engine.features import PixelFeatureFrame
from mineralsight.engine.fusion import ScoreFusion
from mineralsight.engine.labels import NO_MATERIAL, MaterialType, PixelLabelGrid, infer_material_type
from mineralsight.engine.mask import SampleMask
from mineralsight.engine.materials import MaterialsConfig

logger = logging.getLogger(__name__)


class PixelClassifier:
    def __init__(
        self,
        materials: MaterialsConfig,
        config: ClassifierConfig | None = None,
        secondary: SecondaryClassifier | None = None,
        fusion: ScoreFusion | None = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.materials = materials
        if not materials.classifiable():
            raise InvalidInputError("No material with an HSV range is configured")
        self.heuristic = HeuristicClassifier(materials, self.config)
        self.secondary = secondary if secondary is not None else HeuristicStubClassifier(self.config)
        self.fusion = fusion or ScoreFusion.from_config(self.config)

    def _material_type(self, material_id: str) -> MaterialType:
        descriptor = self.materials.get(material_id)
        if descriptor is not None:
            return descriptor.material_type
        return infer_material_type(material_id)

    def classify_frame(self, features: PixelFeatureFrame, mask: SampleMask) -> PixelLabelGrid:
        """Label every sample pixel; background pixels stay unlabeled."""
        w, h = features.width, features.height
        if (mask.width, mask.height) != (w, h):
            raise InvalidInputError(
                f"Mask {mask.width}x{mask.height} does not match image {w}x{h}"
            )
        selection = mask.is_sample
        if not selection.any():
            logger.info("Classification: no sample pixels")
            return PixelLabelGrid.empty(w, h, features.rgb, features.hsv)

        batch = features.batch(selection)
        primary = self.heuristic.classify_batch(batch)
        second = self.secondary.classify_batch(batch)

        # Shared vocabulary: heuristic ids first, then any the secondary adds
        vocabulary: list[str] = []
        lookup: dict[str, int] = {}
        for mid in primary.material_ids + second.material_ids:
            if mid.lower() not in lookup:
                lookup[mid.lower()] = len(vocabulary)
                vocabulary.append(mid)
        primary_vocab = np.array([lookup[m.lower()] for m in primary.material_ids])
        second_vocab = np.array([lookup[m.lower()] for m in second.material_ids])

        primary_idx = primary_vocab[primary.winner]
        second_idx = second_vocab[second.winner]
        agree = primary_idx == second_idx

        heuristic_wins, confidence, raw = self.fusion.fuse_batch(
            agree, primary.confidence, second.confidence
        )
        chosen = np.where(heuristic_wins, primary_idx, second_idx)
        if self.config.min_pixel_confidence > 0:
            chosen = np.where(confidence >= self.config.min_pixel_confidence, chosen, NO_MATERIAL)

        shape = (h, w)
        material_index = np.full(shape, NO_MATERIAL, dtype=np.int16)
        material_index[selection] = chosen
        conf_grid = np.zeros(shape)
        conf_grid[selection] = confidence
        raw_grid = np.zeros(shape)
        raw_grid[selection] = raw
        heuristic_grid = np.zeros(shape)
        heuristic_grid[selection] = primary.confidence
        secondary_grid = np.zeros(shape)
        secondary_grid[selection] = second.confidence

        sample_row = np.full(shape, -1, dtype=np.int32)
        sample_row[selection] = np.arange(len(batch), dtype=np.int32)
        won_grid = np.zeros(shape, dtype=bool)
        won_grid[selection] = heuristic_wins

        labels = PixelLabelGrid(
            width=w,
            height=h,
            material_ids=tuple(vocabulary),
            material_types=tuple(self._material_type(m) for m in vocabulary),
            is_sample=selection.copy(),
            material_index=material_index,
            confidence=conf_grid,
            raw_score=raw_grid,
            heuristic_score=heuristic_grid,
            secondary_score=secondary_grid,
            rgb=features.rgb,
            hsv=features.hsv,
            particle_id=np.zeros(shape, dtype=np.int32),
            probability_ids=primary.material_ids,
            probabilities=primary.probabilities,
            sample_row=sample_row,
            heuristic_won=won_grid,
        )
        logger.info(
            "Classification: %d sample pixels, %d agreements, secondary=%s",
            len(batch),
            int(np.count_nonzero(agree)),
            self.secondary.model_info,
        )
        return labels
