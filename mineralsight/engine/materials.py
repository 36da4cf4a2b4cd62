"""Materials configuration: HSV ranges per metal, crystal and gem.

Reads the ``materials.{metais,cristais,gemas}`` JSON document. Each entry:

    {"id": "Au", "nome": "Ouro", "grupo": "nobre",
     "optico": {"cor_hsv": {"h": [30, 80], "s": [0.18, 1.0], "v": [0.35, 1.0]}}}

S/V ranges written as percentages (any bound > 1) are scaled to 0..1.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mineralsight.engine.errors import MaterialsConfigError
from mineralsight.engine.labels import MaterialType

logger = logging.getLogger(__name__)

DEFAULT_MATERIALS_PATH = Path(__file__).resolve().parent.parent / "data" / "materials.json"

_SECTIONS = (
    ("metais", MaterialType.METAL),
    ("cristais", MaterialType.CRYSTAL),
    ("gemas", MaterialType.GEM),
)


@dataclass(frozen=True)
class HsvRange:
    h_min: float
    h_max: float
    s_min: float
    s_max: float
    v_min: float
    v_max: float

    @property
    def wraps(self) -> bool:
        """Hue interval crosses 360 -> 0 (e.g. reds written as 340..20)."""
        return self.h_min > self.h_max

    def as_row(self) -> tuple[float, float, float, float, float, float]:
        return (self.h_min, self.h_max, self.s_min, self.s_max, self.v_min, self.v_max)


@dataclass(frozen=True)
class MaterialDescriptor:
    id: str
    name: str
    material_type: MaterialType
    group: str = ""
    hsv: HsvRange | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_noble(self) -> bool:
        return self.group.lower() in ("nobre", "noble")

    @property
    def is_pgm(self) -> bool:
        return self.group.lower() == "pgm"


@dataclass
class MaterialsConfig:
    materials: list[MaterialDescriptor] = field(default_factory=list)
    um_per_px: float | None = None

    def __len__(self) -> int:
        return len(self.materials)

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self.materials]

    def of_type(self, material_type: MaterialType) -> list[MaterialDescriptor]:
        return [m for m in self.materials if m.material_type == material_type]

    def get(self, material_id: str | None) -> MaterialDescriptor | None:
        if not material_id:
            return None
        wanted = material_id.lower()
        for m in self.materials:
            if m.id.lower() == wanted:
                return m
        return None

    def classifiable(self) -> list[MaterialDescriptor]:
        """Materials with a usable HSV range, in configuration order."""
        return [m for m in self.materials if m.hsv is not None]


def _pair(raw: Any, name: str) -> tuple[float, float] | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    try:
        return float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s range: %r", name, raw)
        return None


def _unit(bounds: tuple[float, float]) -> tuple[float, float]:
    if bounds[0] > 1 or bounds[1] > 1:
        return bounds[0] / 100.0, bounds[1] / 100.0
    return bounds


def parse_hsv_range(optico: Any) -> HsvRange | None:
    """HsvRange from an ``optico`` block, or None when it has no complete cor_hsv."""
    if not isinstance(optico, dict):
        return None
    cor = optico.get("cor_hsv")
    if not isinstance(cor, dict):
        return None
    h = _pair(cor.get("h"), "h")
    s = _pair(cor.get("s"), "s")
    v = _pair(cor.get("v"), "v")
    if h is None or s is None or v is None:
        return None
    s, v = _unit(s), _unit(v)
    return HsvRange(h_min=h[0], h_max=h[1], s_min=s[0], s_max=s[1], v_min=v[0], v_max=v[1])


def parse_materials(document: dict[str, Any]) -> MaterialsConfig:
    """Build a MaterialsConfig from an already-decoded document."""
    if not isinstance(document, dict):
        raise MaterialsConfigError("Materials document must be a JSON object")
    root = document.get("materials", document)
    if not isinstance(root, dict):
        raise MaterialsConfigError("'materials' must be an object")

    seen: set[str] = set()
    materials: list[MaterialDescriptor] = []
    for section, material_type in _SECTIONS:
        for entry in root.get(section) or []:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            mid = str(entry["id"]).strip()
            if mid.lower() in seen:
                logger.debug("Duplicate material id %s ignored", mid)
                continue
            seen.add(mid.lower())
            hsv = parse_hsv_range(entry.get("optico"))
            if hsv is None:
                logger.debug("Material %s has no HSV range; it will not be classified", mid)
            metadata = {
                k: entry[k]
                for k in ("morfologia", "espectral", "interferencia_tendencias", "defeitos")
                if k in entry
            }
            materials.append(
                MaterialDescriptor(
                    id=mid,
                    name=str(entry.get("nome") or mid),
                    material_type=material_type,
                    group=str(entry.get("grupo") or ""),
                    hsv=hsv,
                    metadata=metadata,
                )
            )

    scale = (
        ((document.get("calibration") or {}).get("scale") or {}).get("micrometer_slide_um_per_px")
    )
    config = MaterialsConfig(
        materials=materials,
        um_per_px=float(scale) if isinstance(scale, (int, float)) and scale > 0 else None,
    )
    logger.info(
        "Loaded %d materials (%d classifiable)", len(config), len(config.classifiable())
    )
    return config


def load_materials(source: str | Path | dict[str, Any] | None = None) -> MaterialsConfig:
    """Load materials from a path, a decoded dict, or the bundled default file."""
    if isinstance(source, dict):
        return parse_materials(source)
    path = Path(source) if source else DEFAULT_MATERIALS_PATH
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise MaterialsConfigError(f"Cannot read materials file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise MaterialsConfigError(f"Invalid JSON in {path}: {e}") from e
    return parse_materials(document)
