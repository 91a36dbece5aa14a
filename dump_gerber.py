#!/usr/bin/env python3
"""
Print the parsed command stream of a Gerber file.

Examples:
    # One line per command
    python dump_gerber.py top.gbr

    # Only the per-net flash point summary
    python dump_gerber.py top.gbr --nets

    # Commands the parser did not recognize
    python dump_gerber.py top.gbr --unknown
"""

import argparse
import logging
import sys
from collections import Counter
from typing import List, Optional

from gerber_parser import Unknown, parse_gerber_file
from logging_config import setup_logging
from mutcap_exceptions import MutcapError
from net_index import build_net_index
from report_writer import format_net_report
from terminal_colors import CYAN, RED, RESET, YELLOW, colorize


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Print the parsed commands of a Gerber file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('gerber', help='Input Gerber file')
    parser.add_argument('--nets', '-n', action='store_true',
                        help='Print the net report instead of the commands')
    parser.add_argument('--unknown', '-u', action='store_true',
                        help='Only print unrecognized commands')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log parser messages')

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        commands = parse_gerber_file(args.gerber)
    except MutcapError as e:
        print(f"{RED}Error: {e}{RESET}")
        return 1

    if args.nets:
        for line in format_net_report(build_net_index(commands)):
            print(line)
        return 0

    for cmd in commands:
        if isinstance(cmd, Unknown):
            print(colorize(str(cmd), YELLOW))
        elif not args.unknown:
            print(cmd)

    counts = Counter(type(cmd).__name__ for cmd in commands)
    summary = ', '.join(f"{name} {count}" for name, count in sorted(counts.items()))
    print(colorize(f"\n{len(commands)} commands: {summary}", CYAN))
    return 0


if __name__ == '__main__':
    sys.exit(main())
