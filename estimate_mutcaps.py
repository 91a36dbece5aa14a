#!/usr/bin/env python3
"""
Estimate mutual capacitances between the nets of a PCB.

Reads one bitmap and one Gerber file per copper layer (listed in a JSON
configuration, see mutcap_config.py), finds the copper islands of each layer,
names them after the Gerber nets whose flash points land on them, and
estimates the parallel-plate capacitance between overlapping islands of
adjacent layers.

Examples:
    # Full run, writes reports and layer images into the configured output dir
    python estimate_mutcaps.py --config board.json

    # Use the scipy labeling backend and skip the images
    python estimate_mutcaps.py --config board.json --method ndimage --no-images

    # Progress messages, also saved to a file
    python estimate_mutcaps.py --config board.json --verbose --log-file run.log
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

# Run startup checks before other imports
from startup_checks import run_all_checks
run_all_checks()

from connected_components import LABEL_METHODS
from gerber_parser import read_gerber_text
from image_io import load_bitmap, save_rgb_image
from logging_config import setup_logging
from mutcap_config import MutcapConfig, load_config
from mutcap_constants import LAYER_IMAGE_TEMPLATE
from mutcap_exceptions import MutcapError
from mutcap_pipeline import BoardAnalysis, analyze_board
from report_writer import write_reports
from terminal_colors import GREEN, RED, RESET, YELLOW

logger = logging.getLogger(__name__)


def run_estimation(config: MutcapConfig, method: str = 'flood',
                   write_images: bool = True) -> BoardAnalysis:
    """
    Load the inputs of a configuration, analyze them and write all outputs.

    Args:
        config: Loaded configuration
        method: Component labeling method
        write_images: Also write layc<n>.png component images

    Returns:
        The board analysis
    """
    bitmaps = []
    gerber_texts = []
    for layer, bitmap_path, gerber_path in zip(config.layers, config.bitmap_paths(),
                                                config.gerber_paths()):
        logger.info("Loading layer %s: %s, %s", layer.name, bitmap_path, gerber_path)
        bitmaps.append(load_bitmap(bitmap_path))
        gerber_texts.append(read_gerber_text(gerber_path))

    analysis = analyze_board(bitmaps, gerber_texts, config.to_parameters(),
                             layer_names=config.layer_names, method=method,
                             render_images=write_images)

    write_reports(analysis, config.output)
    for ilay, img in enumerate(analysis.images):
        path = os.path.join(config.output, LAYER_IMAGE_TEMPLATE.format(number=ilay + 1))
        logger.info("Writing %s", path)
        save_rgb_image(path, img)
    return analysis


def print_summary(analysis: BoardAnalysis, output_dir: str) -> None:
    height, width = analysis.raster.shape
    print(f"\nBoard: {width} x {height} pixels, {analysis.num_layers} layers")
    for name, lc, match in zip(analysis.layer_names, analysis.components, analysis.matches):
        print(f"  {name}: {len(lc)} components, {match.named_count} named, "
              f"{len(analysis.net_indexes[match.layer])} nets")
        if match.out_of_bounds:
            print(f"    {YELLOW}{match.out_of_bounds} flash points out of bounds{RESET}")
        if match.conflicts:
            print(f"    {YELLOW}{len(match.conflicts)} components claimed by several nets{RESET}")
    print(f"Unique nets: {len(analysis.registry)}")
    print(f"Net pairs with overlap: {len(analysis.capacitances)}, "
          f"above threshold: {len(analysis.significant)}")
    if analysis.significant:
        largest = analysis.significant[-1]
        print(f"Largest: {largest.picofarads:.3f} pF between {largest.name_a} and {largest.name_b}")
    print(f"{GREEN}Results written to {output_dir}{RESET}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Estimate mutual capacitances between PCB nets',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', '-c', required=True, help='JSON configuration file')
    parser.add_argument('--method', '-m', choices=LABEL_METHODS, default='flood',
                        help='Component labeling method (default: flood)')
    parser.add_argument('--no-images', action='store_true',
                        help='Do not write the component-colored layer images')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log progress messages')
    parser.add_argument('--log-file', help='Also write log messages to this file')

    args = parser.parse_args(argv)

    setup_logging(logging.INFO if args.verbose else logging.WARNING, args.log_file)

    try:
        config = load_config(args.config)
        analysis = run_estimation(config, args.method, write_images=not args.no_images)
    except MutcapError as e:
        print(f"{RED}Error: {e}{RESET}")
        return 1

    print_summary(analysis, config.output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
