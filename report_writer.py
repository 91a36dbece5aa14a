"""
Text reports of a board analysis.

Writes, into the output directory:
- nets-<i>-<layer>.txt       per-layer net report
- net-match-<i>-<layer>.txt  per-layer flash point -> component matches
- nets.txt                   global net listing in registration order
- mutcaps.txt                mutual capacitances, ascending
"""

import os
from typing import Iterable, List, Optional, Sequence

from capacitance import MutualCapacitance
from mutcap_constants import (
    MATCH_REPORT_TEMPLATE, MUTCAPS_REPORT_NAME, NET_LISTING_NAME, NET_REPORT_TEMPLATE
)
from mutcap_exceptions import OutputFileError
from net_index import NetIndex
from net_matching import LayerMatch
from net_registry import NetRegistry


def format_net_report(net_index: NetIndex) -> List[str]:
    """One line per net: name, point count, first point."""
    lines = []
    for name in sorted(net_index):
        points = net_index[name]
        x, y = points[0]
        lines.append(f"{name} {len(points)} {x} {y}")
    return lines


def format_match_report(match: LayerMatch) -> List[str]:
    """One line per net listing where each of its flash points landed."""
    lines = []
    for name in sorted(match.point_matches):
        parts = [f"{name} -> "]
        for pm in match.point_matches[name]:
            parts.append(f"  {pm.x},{pm.y} ({pm.px},{pm.py})")
            if pm.out_of_bounds:
                parts.append(f"? (out of bounds, {pm.side})")
            else:
                parts.append(f":{pm.component_id}")
        lines.append(''.join(parts))
    return lines


def format_net_listing(registry: NetRegistry) -> List[str]:
    return [f"{net_id} {name}" for net_id, name in registry.items()]


def format_mutcaps(rows: Iterable[MutualCapacitance]) -> List[str]:
    """One line per net pair: capacitance in pF, then both net names, tab separated."""
    return [f"{r.picofarads:7.3f} pF\t{r.name_a}\t{r.name_b}" for r in rows]


def write_lines(path: str, lines: Iterable[str]) -> None:
    try:
        with open(path, 'w', encoding='utf-8') as f:
            for line in lines:
                f.write(line + '\n')
    except OSError as e:
        raise OutputFileError(f"Cannot write {path}: {e}") from e


def write_reports(analysis, output_dir: str,
                  layer_names: Optional[Sequence[str]] = None) -> List[str]:
    """
    Write all text reports of an analysis.

    Args:
        analysis: BoardAnalysis from mutcap_pipeline.analyze_board
        output_dir: Directory to write into (created if missing)
        layer_names: Layer names used in per-layer file names
            (default: the names the analysis was run with)

    Returns:
        Paths of the files written
    """
    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        raise OutputFileError(f"Cannot create output directory {output_dir}: {e}") from e

    if layer_names is None:
        layer_names = analysis.layer_names

    written = []
    for ilay, name in enumerate(layer_names):
        path = os.path.join(output_dir, NET_REPORT_TEMPLATE.format(index=ilay, name=name))
        write_lines(path, format_net_report(analysis.net_indexes[ilay]))
        written.append(path)

        path = os.path.join(output_dir, MATCH_REPORT_TEMPLATE.format(index=ilay, name=name))
        write_lines(path, format_match_report(analysis.matches[ilay]))
        written.append(path)

    path = os.path.join(output_dir, NET_LISTING_NAME)
    write_lines(path, format_net_listing(analysis.registry))
    written.append(path)

    path = os.path.join(output_dir, MUTCAPS_REPORT_NAME)
    write_lines(path, format_mutcaps(analysis.significant))
    written.append(path)
    return written
