"""
Multi-layer copper raster.

Combines one presence bitmap per copper layer into a single grid where bit i
of each pixel is set when layer i has copper there.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from mutcap_constants import MAX_LAYERS
from mutcap_exceptions import ConfigurationError, DimensionMismatchError, MissingLayersError


def _word_dtype(num_layers: int):
    for dtype in (np.uint8, np.uint16, np.uint32, np.uint64):
        if num_layers <= np.iinfo(dtype).bits:
            return dtype
    raise ConfigurationError(f"At most {MAX_LAYERS} layers supported, got {num_layers}")


@dataclass(frozen=True)
class LayerRaster:
    """Shared presence bitmask grid for all layers."""
    bits: np.ndarray  # shape (height, width), unsigned integer words
    num_layers: int

    @property
    def shape(self) -> Tuple[int, int]:
        return self.bits.shape

    @property
    def height(self) -> int:
        return self.bits.shape[0]

    @property
    def width(self) -> int:
        return self.bits.shape[1]

    def layer_mask(self, layer: int) -> int:
        """Single-bit mask selecting one layer."""
        if not 0 <= layer < self.num_layers:
            raise IndexError(f"Layer {layer} out of range (0..{self.num_layers - 1})")
        return 1 << layer

    def layer_pixels(self, layer: int) -> np.ndarray:
        """Boolean presence grid of one layer."""
        return (self.bits & self.bits.dtype.type(self.layer_mask(layer))) != 0


def build_raster(bitmaps: Sequence[np.ndarray]) -> LayerRaster:
    """
    Combine per-layer bitmaps into one presence raster.

    Args:
        bitmaps: One 2-D array per layer, in stack order; any nonzero value
                 counts as copper

    Returns:
        LayerRaster with bit i set where layer i has copper

    Raises:
        MissingLayersError: if no bitmap is supplied
        DimensionMismatchError: if the bitmaps differ in width or height
    """
    if len(bitmaps) == 0:
        raise MissingLayersError()

    num_layers = len(bitmaps)
    dtype = _word_dtype(num_layers)
    expected = np.shape(bitmaps[0])
    if len(expected) != 2:
        raise ConfigurationError(f"Layer bitmaps must be 2-D, got shape {expected}")

    bits = np.zeros(expected, dtype=dtype)
    for ilay, bitmap in enumerate(bitmaps):
        bitmap = np.asarray(bitmap)
        if bitmap.shape != expected:
            raise DimensionMismatchError(expected, bitmap.shape, layer=ilay)
        bits[bitmap != 0] |= dtype(1 << ilay)

    bits.setflags(write=False)
    return LayerRaster(bits=bits, num_layers=num_layers)
