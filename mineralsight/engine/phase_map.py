"""Phase maps and confidence heatmaps."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.labels import MaterialType, PixelLabelGrid
from mineralsight.utils.imaging import blend, to_grayscale

Color = tuple[int, int, int]

BACKGROUND_COLOR: Color = (30, 30, 40)
UNKNOWN_COLOR: Color = (128, 128, 128)

_PALETTE: dict[Color, tuple[str, ...]] = {
    (255, 215, 0): ("au", "ouro", "gold"),
    (192, 192, 192): ("ag", "prata", "silver"),
    (148, 100, 168): ("pt", "platina", "platinum", "pgm"),
    (160, 140, 180): ("pd", "paladio", "paládio", "palladium"),
    (200, 200, 220): ("rh", "ródio", "rhodium"),
    (130, 130, 150): ("ir", "irídio", "iridium"),
    (140, 140, 140): ("ru", "rutênio", "ruthenium"),
    (100, 100, 120): ("os", "ósmio", "osmium"),
    (184, 115, 51): ("cu", "cobre", "copper"),
    (139, 69, 19): ("fe", "ferro", "iron"),
    (210, 210, 210): ("al", "alumínio", "aluminum"),
    (170, 170, 180): ("ni", "níquel", "nickel"),
    (180, 180, 190): ("zn", "zinco", "zinc"),
    (80, 80, 90): ("pb", "chumbo", "lead"),
    (255, 165, 0): ("sulfeto", "sulfide"),
    (218, 165, 32): ("pirita", "pyrite"),
    (0, 191, 255): ("silicato", "silicate"),
    (100, 149, 237): ("ganga", "gangue"),
    (245, 245, 250): ("sio2", "quartzo", "quartz"),
    (255, 250, 230): ("caco3", "calcita", "calcite"),
    (255, 220, 200): ("feldspato", "feldspar"),
    (190, 160, 100): ("mica",),
    (148, 0, 211): ("caf2", "fluorita", "fluorite"),
    (255, 255, 255): ("c", "diamante", "diamond"),
    (15, 82, 186): ("al2o3_blue", "safira", "sapphire"),
    (155, 17, 30): ("al2o3_red", "rubi", "ruby"),
    (80, 200, 120): ("be3al2si6o18", "esmeralda", "emerald"),
    (153, 102, 204): ("sio2_purple", "ametista", "amethyst"),
    (46, 139, 87): ("metalother", "other"),
}
_BY_ALIAS = {alias: color for color, aliases in _PALETTE.items() for alias in aliases}


def material_color(material_id: str | None) -> Color:
    """Fixed display color for a material id or alias (case-insensitive)."""
    if not material_id or not material_id.strip():
        return UNKNOWN_COLOR
    return _BY_ALIAS.get(material_id.strip().lower(), UNKNOWN_COLOR)


def _vocabulary_colors(labels: PixelLabelGrid) -> NDArray[np.uint8]:
    return np.array([material_color(m) for m in labels.material_ids], dtype=np.uint8).reshape(-1, 3)


def phase_map(labels: PixelLabelGrid) -> NDArray[np.uint8]:
    """Every sample pixel painted with its material color on a dark background."""
    out = np.empty((labels.height, labels.width, 3), dtype=np.uint8)
    out[:] = BACKGROUND_COLOR
    types = np.array([int(t) for t in labels.material_types], dtype=np.int64)
    labeled = labels.is_sample & (labels.material_index >= 0)
    if labeled.any():
        idx = labels.material_index[labeled]
        colors = _vocabulary_colors(labels)[idx]
        colors[types[idx] == MaterialType.BACKGROUND] = BACKGROUND_COLOR
        out[labeled] = colors
    out[labels.is_sample & (labels.material_index < 0)] = UNKNOWN_COLOR
    return out


def target_heatmap(
    base_image: NDArray[np.uint8],
    labels: PixelLabelGrid,
    target_material: str,
    opacity: float = 0.6,
) -> NDArray[np.uint8]:
    """Target tinted by confidence; background darkened; other sample half-desaturated."""
    base = base_image[: labels.height, : labels.width]
    out = base.copy()
    target = labels.material_mask(target_material)
    background = ~labels.is_sample
    other = labels.is_sample & ~target

    out[background] = (base[background].astype(np.float64) * 0.5).astype(np.uint8)
    gray = np.floor(to_grayscale(base[other]))[:, np.newaxis]
    out[other] = ((base[other].astype(np.float64) + gray) // 2).astype(np.uint8)
    out[target] = blend(base[target], material_color(target_material), opacity * labels.confidence[target])
    return out


def multi_material_heatmap(
    base_image: NDArray[np.uint8],
    labels: PixelLabelGrid,
    opacities: dict[str, float] | None = None,
    default_opacity: float = 0.5,
) -> NDArray[np.uint8]:
    """All labeled materials tinted at once, each with its own opacity."""
    base = base_image[: labels.height, : labels.width]
    out = base.copy()
    background = ~labels.is_sample
    out[background] = (base[background].astype(np.float64) * 0.4).astype(np.uint8)

    wanted = {k.lower(): v for k, v in (opacities or {}).items()}
    colors = _vocabulary_colors(labels)
    for k, mid in enumerate(labels.material_ids):
        sel = labels.is_sample & (labels.material_index == k)
        if not sel.any():
            continue
        alpha = wanted.get(mid.lower(), default_opacity) * labels.confidence[sel]
        out[sel] = blend(base[sel], tuple(int(c) for c in colors[k]), alpha)
    return out
