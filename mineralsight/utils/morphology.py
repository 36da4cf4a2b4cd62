"""Connected-component operations on boolean grids.

Every component pass in the engine (mask cleanup, particle extraction,
selective-overlay noise filtering) goes through these helpers. No engine imports.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


def _structure(connectivity: int) -> NDArray[np.bool_]:
    if connectivity == 8:
        return EIGHT_CONNECTED
    if connectivity == 4:
        return FOUR_CONNECTED
    raise ValueError(f"Unsupported connectivity: {connectivity}")


def label_components(
    grid: NDArray[np.bool_], connectivity: int = 8
) -> tuple[NDArray[np.int32], int]:
    """Label connected True cells. Label ids follow raster order of first pixel."""
    labels, count = ndimage.label(grid, structure=_structure(connectivity))
    labels = labels.astype(np.int32, copy=False)
    if count > 1:
        labels = raster_ordered(labels, count)
    return labels, int(count)


def raster_ordered(labels: NDArray[np.int32], count: int) -> NDArray[np.int32]:
    """Renumber labels 1..count by the raster position of each label's first cell."""
    flat = labels.ravel()
    values, first_index = np.unique(flat, return_index=True)
    nonzero = values != 0
    values, first_index = values[nonzero], first_index[nonzero]
    order = np.argsort(first_index, kind="stable")
    remap = np.zeros(count + 1, dtype=np.int32)
    remap[values[order]] = np.arange(1, count + 1, dtype=np.int32)
    return remap[labels]


def component_sizes(labels: NDArray[np.int32], count: int) -> NDArray[np.int64]:
    """Pixel count per label; index 0 is the unlabeled cells."""
    return np.bincount(labels.ravel(), minlength=count + 1)


def border_labels(labels: NDArray[np.int32]) -> NDArray[np.int32]:
    """Distinct non-zero labels present on the outer frame of the grid."""
    edges = np.concatenate([labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]])
    found = np.unique(edges)
    return found[found != 0]


def clear_border(
    grid: NDArray[np.bool_], connectivity: int = 8
) -> tuple[NDArray[np.bool_], int]:
    """Remove every component touching the frame. Returns (grid, pixels removed)."""
    if grid.size == 0 or not grid.any():
        return grid.copy(), 0
    labels, _ = label_components(grid, connectivity)
    touching = np.isin(labels, border_labels(labels))
    cleared = grid & ~touching
    return cleared, int(np.count_nonzero(touching))


def filter_small_components(
    grid: NDArray[np.bool_],
    min_size: int,
    keep_only_largest: bool = False,
    connectivity: int = 8,
) -> tuple[NDArray[np.bool_], int]:
    """Drop components below ``min_size``. Returns (grid, pixels removed)."""
    if not grid.any():
        return grid.copy(), 0
    labels, count = label_components(grid, connectivity)
    sizes = component_sizes(labels, count)
    keep = sizes >= max(min_size, 0)
    keep[0] = False
    if keep_only_largest and keep.any():
        largest = int(np.argmax(np.where(keep, sizes, -1)))
        keep[:] = False
        keep[largest] = True
    filtered = keep[labels]
    return filtered, int(np.count_nonzero(grid) - np.count_nonzero(filtered))


def fill_small_holes(
    grid: NDArray[np.bool_], max_hole_size: int, connectivity: int = 8
) -> tuple[NDArray[np.bool_], int]:
    """Fill background pockets not connected to the frame. Returns (grid, pixels filled)."""
    if max_hole_size <= 0 or not grid.any():
        return grid.copy(), 0
    holes, count = label_components(~grid, connectivity)
    if count == 0:
        return grid.copy(), 0
    sizes = component_sizes(holes, count)
    fillable = sizes <= max_hole_size
    fillable[0] = False
    fillable[border_labels(holes)] = False
    to_fill = fillable[holes]
    return grid | to_fill, int(np.count_nonzero(to_fill))


def boundary_pixels(component: NDArray[np.bool_]) -> NDArray[np.bool_]:
    """Cells with at least one 4-neighbour outside the component (or off-grid)."""
    interior = ndimage.binary_erosion(component, structure=FOUR_CONNECTED, border_value=0)
    return component & ~interior
