"""
Mutual capacitance estimation between nets on adjacent copper layers.

Each pair of overlapping components on facing layers is treated as a
parallel-plate capacitor:

    C = eps0 * eps_r * A / d

with A the overlap area (pixel count times pixel area) and d the dielectric
thickness between the two layers. Contributions are summed per net pair.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from mutcap_constants import ATTOFARAD, MM2_TO_M2, MM_TO_M, PICOFARAD, VACUUM_PERMITTIVITY
from net_registry import NetRegistry

logger = logging.getLogger(__name__)

CapacitanceMap = Dict[Tuple[int, int], float]


@dataclass(frozen=True)
class MutualCapacitance:
    """One reported net pair."""
    net_a: int
    net_b: int
    name_a: str
    name_b: str
    farads: float
    attofarads: int  # rounded sort key

    @property
    def picofarads(self) -> float:
        return self.attofarads * (ATTOFARAD / PICOFARAD)


def adjacent_layers(ilay: int, num_layers: int) -> List[int]:
    """
    Layers facing layer ilay in a linear stack.

    The lower neighbour is only taken for ilay > 1, so layer 1 never looks
    back at layer 0; the (0, 1) pair is seen once, from layer 0, while
    deeper pairs are seen from both sides.
    """
    jlays = []
    if ilay > 1:
        jlays.append(ilay - 1)
    if ilay + 1 < num_layers:
        jlays.append(ilay + 1)
    return jlays


def overlap_capacitance(n_pixels: int, delta: float, eps_rel: float, thickness: float) -> float:
    """
    Parallel-plate capacitance of an overlap.

    Args:
        n_pixels: Number of overlapping pixels
        delta: Pixel pitch in mm
        eps_rel: Relative permittivity of the dielectric
        thickness: Dielectric thickness in mm

    Returns:
        Capacitance in farads
    """
    area = n_pixels * delta * delta * MM2_TO_M2
    return VACUUM_PERMITTIVITY * eps_rel * area / (thickness * MM_TO_M)


def overlap_counts(ids_i: np.ndarray, ids_j: np.ndarray) -> List[Tuple[int, int, int]]:
    """
    Pixel overlap between the components of two layers.

    Args:
        ids_i: Component id grid of the first layer
        ids_j: Component id grid of the second layer

    Returns:
        (component_i, component_j, pixel_count) for every overlapping pair,
        ordered by component_i then component_j
    """
    gi = ids_i.ravel().astype(np.int64)
    gj = ids_j.ravel().astype(np.int64)
    both = (gi > 0) & (gj > 0)
    if not both.any():
        return []
    stride = int(gj.max()) + 1
    keys, counts = np.unique(gi[both] * stride + gj[both], return_counts=True)
    return [(int(k // stride), int(k % stride), int(n)) for k, n in zip(keys, counts)]


def estimate_mutual_capacitances(component_ids: np.ndarray,
                                 component_nets: Sequence[Sequence[int]],
                                 registry: NetRegistry,
                                 delta: float,
                                 eps_rel: float,
                                 thickness: float) -> CapacitanceMap:
    """
    Accumulate overlap capacitance per net pair over all adjacent layers.

    Args:
        component_ids: [layer][y][x] component id array
        component_nets: Per layer, the registry net id of each component
                        (index = component id - 1)
        registry: Net registry; its unconnected id is skipped
        delta: Pixel pitch in mm
        eps_rel: Relative permittivity
        thickness: Dielectric thickness in mm

    Returns:
        Dict mapping (smaller net id, larger net id) -> farads
    """
    num_layers = len(component_nets)
    skip = registry.unconnected_id
    caps: CapacitanceMap = {}

    for ilay in range(num_layers):
        nets_i = component_nets[ilay]
        for jlay in adjacent_layers(ilay, num_layers):
            nets_j = component_nets[jlay]
            for icom, jcom, n in overlap_counts(component_ids[ilay], component_ids[jlay]):
                inet = nets_i[icom - 1]
                jnet = nets_j[jcom - 1]
                if inet == skip or jnet == skip or inet == jnet:
                    continue
                key = (min(inet, jnet), max(inet, jnet))
                caps[key] = caps.get(key, 0.0) + overlap_capacitance(n, delta, eps_rel, thickness)

    logger.info("Net pairs with nonzero mutual capacitance: %d", len(caps))
    return caps


def significant_capacitances(caps: CapacitanceMap, registry: NetRegistry,
                             cap_min: float) -> List[MutualCapacitance]:
    """
    Net pairs whose total capacitance reaches cap_min, ascending.

    Ordering uses the capacitance rounded to whole attofarads, then the net
    ids, so the report order does not depend on float comparisons.
    """
    rows = []
    for (inet, jnet), cap in caps.items():
        if cap < cap_min:
            continue
        rows.append(MutualCapacitance(
            net_a=inet,
            net_b=jnet,
            name_a=registry.find_name(inet),
            name_b=registry.find_name(jnet),
            farads=cap,
            attofarads=int(math.floor(cap / ATTOFARAD + 0.5)),
        ))
    rows.sort(key=lambda r: (r.attofarads, r.net_a, r.net_b))
    return rows
