"""
In-memory analysis of one board.

Runs the whole chain on decoded inputs:

    Gerber text -> commands -> net index
    bitmaps -> raster -> components -> id grid
    net index + id grid -> component names -> net registry
    components + registry -> mutual capacitances

File reading and report writing are left to the caller (see
estimate_mutcaps.py).
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from capacitance import (
    CapacitanceMap, MutualCapacitance, estimate_mutual_capacitances, significant_capacitances
)
from component_image import colorize_components, make_palette, mark_point
from connected_components import LayerComponents, component_id_grid, label_all_layers
from layer_raster import LayerRaster, build_raster
from mutcap_constants import MM_PER_INCH, PALETTE_SEED
from mutcap_exceptions import ConfigurationError, MissingLayersError
from net_index import NetIndex, parse_net_index
from net_matching import LayerMatch, PixelTransform, match_layer_nets
from net_registry import NetRegistry, register_component_nets
from xorwow import Xorwow

logger = logging.getLogger(__name__)


@dataclass
class AnalysisParameters:
    """Scalar inputs of the analysis."""
    dpi: float
    origin: Tuple[float, float] = (0.0, 0.0)
    eps_rel: float = 4.2
    thickness: float = 1.6  # mm
    cap_min: float = 0.0  # F
    mark: Optional[Tuple[float, float]] = None

    @property
    def delta(self) -> float:
        """Pixel pitch in mm."""
        return MM_PER_INCH / self.dpi

    def validate(self) -> None:
        if self.dpi <= 0:
            raise ConfigurationError(f"dpi must be positive, got {self.dpi}")
        if self.thickness <= 0:
            raise ConfigurationError(f"thickness must be positive, got {self.thickness}")
        if self.eps_rel <= 0:
            raise ConfigurationError(f"eps_rel must be positive, got {self.eps_rel}")


@dataclass
class BoardAnalysis:
    """Everything computed for one board."""
    raster: LayerRaster
    transform: PixelTransform
    net_indexes: List[NetIndex]
    components: List[LayerComponents]
    component_ids: np.ndarray
    matches: List[LayerMatch]
    registry: NetRegistry
    capacitances: CapacitanceMap
    significant: List[MutualCapacitance]
    images: List[np.ndarray] = field(default_factory=list)
    layer_names: List[str] = field(default_factory=list)

    @property
    def num_layers(self) -> int:
        return self.raster.num_layers

    @property
    def total_out_of_bounds(self) -> int:
        return sum(m.out_of_bounds for m in self.matches)


def analyze_board(bitmaps: Sequence[np.ndarray],
                  gerber_texts: Sequence[str],
                  params: AnalysisParameters,
                  layer_names: Optional[Sequence[str]] = None,
                  method: str = 'flood',
                  render_images: bool = False) -> BoardAnalysis:
    """
    Estimate mutual capacitances between the nets of one board.

    Args:
        bitmaps: One 2-D presence array per copper layer, in stack order
        gerber_texts: Gerber text of each layer, same order as bitmaps
        params: dpi, origin, dielectric and reporting parameters
        layer_names: Display names of the layers (default "0", "1", ...)
        method: Component labeling method ('flood' or 'ndimage')
        render_images: Also build component-colored RGB images

    Returns:
        BoardAnalysis with all intermediate and final results

    Raises:
        MissingLayersError: no layers
        DimensionMismatchError: bitmaps of different sizes
        GerberParseError: malformed Gerber input
        ConfigurationError: invalid parameters or layer count mismatch
    """
    params.validate()
    if len(bitmaps) == 0:
        raise MissingLayersError()
    if len(gerber_texts) != len(bitmaps):
        raise ConfigurationError(
            f"Got {len(bitmaps)} bitmaps but {len(gerber_texts)} Gerber files")
    if layer_names is None:
        layer_names = [str(i) for i in range(len(bitmaps))]
    elif len(layer_names) != len(bitmaps):
        raise ConfigurationError(
            f"Got {len(bitmaps)} bitmaps but {len(layer_names)} layer names")

    raster = build_raster(bitmaps)
    height, width = raster.shape
    logger.info("Dimensions: %d x %d, number of layers: %d", height, width, raster.num_layers)

    net_indexes = []
    for name, text in zip(layer_names, gerber_texts):
        net_index = parse_net_index(text)
        logger.info("Layer %s: %d nets in Gerber data", name, len(net_index))
        net_indexes.append(net_index)

    logger.info("Computing connected components")
    components = label_all_layers(raster, method)
    component_ids = component_id_grid(components)

    transform = PixelTransform.from_dpi(params.dpi, params.origin, height, width)

    logger.info("Matching components to nets")
    matches = [
        match_layer_nets(net_indexes[ilay], component_ids[ilay], len(components[ilay]),
                         transform, layer=ilay)
        for ilay in range(raster.num_layers)
    ]

    images = []
    if render_images:
        rng = Xorwow(PALETTE_SEED)
        for lc in components:
            img = colorize_components(lc, make_palette(rng, len(lc)))
            mark_point(img, transform, params.mark)
            images.append(img)

    registry = NetRegistry()
    register_component_nets(registry, [m.component_names for m in matches])
    logger.info("Total number of unique nets: %d", len(registry))

    component_nets = [[registry.resolve(name) for name in m.component_names] for m in matches]
    logger.info("Estimating mutual capacitances for adjacent layers")
    caps = estimate_mutual_capacitances(component_ids, component_nets, registry,
                                        params.delta, params.eps_rel, params.thickness)
    significant = significant_capacitances(caps, registry, params.cap_min)

    return BoardAnalysis(
        raster=raster,
        transform=transform,
        net_indexes=net_indexes,
        components=components,
        component_ids=component_ids,
        matches=matches,
        registry=registry,
        capacitances=caps,
        significant=significant,
        images=images,
        layer_names=list(layer_names),
    )
