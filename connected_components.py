"""
Connected component labeling of one copper layer.

A component is a maximal set of copper pixels connected through up/down/
left/right neighbours (no diagonals). Components are numbered from 1 in
discovery order: seeds are taken in (row, column) order among the pixels not
yet reached, so the numbering is reproducible.
"""

import logging
from array import array
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
from scipy import ndimage

from layer_raster import LayerRaster
from mutcap_constants import VISITED_WORD_BITS

logger = logging.getLogger(__name__)

FOUR_CONNECTIVITY = np.array([[0, 1, 0],
                              [1, 1, 1],
                              [0, 1, 0]], dtype=bool)

LABEL_METHODS = ('flood', 'ndimage')


@dataclass
class LayerComponents:
    """Components of one layer; pixels are sorted flat row-major indices."""
    layer: int
    shape: Tuple[int, int]
    components: List[np.ndarray] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.components)

    def sizes(self) -> List[int]:
        return [len(c) for c in self.components]

    def pixels(self, component_id: int) -> List[Tuple[int, int]]:
        """(row, column) pixels of a 1-based component id."""
        _, width = self.shape
        return [divmod(int(q), width) for q in self.components[component_id - 1]]

    def id_grid(self) -> np.ndarray:
        """2-D array of component ids, 0 where there is no copper."""
        height, width = self.shape
        grid = np.zeros(height * width, dtype=np.int32)
        for icom, com in enumerate(self.components):
            grid[com] = icom + 1
        return grid.reshape(height, width)


def _flood_fill(present: np.ndarray) -> List[np.ndarray]:
    """Explicit-stack flood fill over a boolean 2-D grid."""
    height, width = present.shape
    npix = height * width
    # Visited bitset, one bit per pixel packed in 64-bit words
    nwords = (npix + VISITED_WORD_BITS - 1) // VISITED_WORD_BITS
    visited = array('Q', bytes(8 * nwords))
    flags = np.ascontiguousarray(present, dtype=bool).tobytes()

    components = []
    for seed in np.flatnonzero(present).tolist():
        if visited[seed >> 6] & (1 << (seed & 63)):
            continue
        visited[seed >> 6] |= 1 << (seed & 63)
        stack = [seed]
        component = []
        while stack:
            k = stack.pop()
            component.append(k)
            iy, ix = divmod(k, width)
            neighbours = []
            if iy > 0:
                neighbours.append(k - width)
            if iy + 1 < height:
                neighbours.append(k + width)
            if ix > 0:
                neighbours.append(k - 1)
            if ix + 1 < width:
                neighbours.append(k + 1)
            for r in neighbours:
                m = 1 << (r & 63)
                if flags[r] and not visited[r >> 6] & m:
                    visited[r >> 6] |= m
                    stack.append(r)
        component.sort()
        components.append(np.array(component, dtype=np.int64))
    return components


def _ndimage_label(present: np.ndarray) -> List[np.ndarray]:
    """Same partition and numbering as _flood_fill, computed by scipy."""
    labels, count = ndimage.label(present, structure=FOUR_CONNECTIVITY)
    flat = labels.ravel()
    idx = np.flatnonzero(flat)
    lab = flat[idx]
    order = np.argsort(lab, kind='stable')
    counts = np.bincount(lab, minlength=count + 1)[1:]
    return [c.astype(np.int64) for c in np.split(idx[order], np.cumsum(counts)[:-1])] if count else []


def label_components(raster: LayerRaster, layer: int, method: str = 'flood') -> LayerComponents:
    """
    Find the 4-connected copper components of one layer.

    Args:
        raster: Combined layer raster
        layer: Layer index; its single-bit mask selects the copper pixels
        method: 'flood' (explicit-stack flood fill) or 'ndimage' (scipy labeling,
                identical result, faster on large boards)

    Returns:
        LayerComponents numbered in discovery order
    """
    if method not in LABEL_METHODS:
        raise ValueError(f"Unknown labeling method {method!r}, expected one of {LABEL_METHODS}")
    present = raster.layer_pixels(layer)
    if method == 'flood':
        components = _flood_fill(present)
    else:
        components = _ndimage_label(present)
    logger.info("Layer %d: %d components", layer, len(components))
    return LayerComponents(layer=layer, shape=raster.shape, components=components)


def label_all_layers(raster: LayerRaster, method: str = 'flood') -> List[LayerComponents]:
    """Label every layer of the raster, in layer order."""
    return [label_components(raster, ilay, method) for ilay in range(raster.num_layers)]


def component_id_grid(layers: Sequence[LayerComponents]) -> np.ndarray:
    """Stack per-layer id grids into a [layer][y][x] array."""
    if not layers:
        return np.zeros((0, 0, 0), dtype=np.int32)
    return np.stack([lc.id_grid() for lc in layers])
