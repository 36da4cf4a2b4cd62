"""Engine exceptions. Analysis findings are never raised; they become alerts."""

from __future__ import annotations


class MineralSightError(Exception):
    """Base class for engine errors."""


class InvalidInputError(MineralSightError, ValueError):
    """Missing, empty or malformed input image."""


class MaterialsConfigError(MineralSightError, ValueError):
    """Materials document is unreadable or defines no usable material."""
