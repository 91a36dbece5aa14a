"""
Net index extraction from a parsed Gerber command stream.

Walks the commands once, tracking units, coordinate format and the net named
by the active .N object attribute, and collects the flash points of each net.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from gerber_parser import (
    AttributeTarget, Command, CoordinateFormat, DefineAttribute, DeleteAttribute,
    Operation, OperationKind, SetCoordinateFormat, SetMode, UnitMode, parse_gerber
)
from mutcap_constants import (
    DEFAULT_COORDINATE_DIGITS, DEFAULT_UNIT_SCALE, MM_PER_INCH, NET_ATTRIBUTE_NAME
)

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
NetIndex = Dict[str, List[Point]]

UNIT_SCALES = {
    UnitMode.MILLIMETERS: 1.0,
    UnitMode.INCHES: MM_PER_INCH,
}


class NetIndexBuilder:
    """Left-to-right fold over Gerber commands producing net -> flash points."""

    def __init__(self):
        self.scale: Optional[float] = None
        self.x_format: Optional[CoordinateFormat] = None
        self.y_format: Optional[CoordinateFormat] = None
        self.active_net: Optional[str] = None
        self.index: NetIndex = {}
        self._warned_mode = False
        self._warned_format = False

    def feed(self, cmd: Command) -> None:
        """Apply one command to the builder state."""
        if isinstance(cmd, SetMode):
            self.scale = UNIT_SCALES[cmd.mode]
        elif isinstance(cmd, SetCoordinateFormat):
            self.x_format = cmd.x
            self.y_format = cmd.y
        elif isinstance(cmd, DefineAttribute):
            if (cmd.target == AttributeTarget.OBJECT and cmd.name == NET_ATTRIBUTE_NAME
                    and cmd.values):
                self.active_net = cmd.values[0]
        elif isinstance(cmd, DeleteAttribute):
            if cmd.name is None or cmd.name == NET_ATTRIBUTE_NAME:
                self.active_net = None
        elif isinstance(cmd, Operation):
            if cmd.op == OperationKind.FLASH and self.active_net is not None:
                self.index.setdefault(self.active_net, []).append(self.to_real(cmd.x, cmd.y))

    def to_real(self, x: int, y: int) -> Point:
        """Convert raw integer coordinates to millimeters."""
        if self.scale is None:
            if not self._warned_mode:
                logger.warning("No unit mode (MO) before first flash; assuming millimeters")
                self._warned_mode = True
            scale = DEFAULT_UNIT_SCALE
        else:
            scale = self.scale
        if self.x_format is None or self.y_format is None:
            if not self._warned_format:
                logger.warning("No coordinate format (FS) before first flash; assuming FSLAX%dY%d",
                               DEFAULT_COORDINATE_DIGITS, DEFAULT_COORDINATE_DIGITS)
                self._warned_format = True
            x_format = y_format = CoordinateFormat.from_digits(DEFAULT_COORDINATE_DIGITS)
        else:
            x_format, y_format = self.x_format, self.y_format
        return (x_format.to_real(x) * scale, y_format.to_real(y) * scale)


def build_net_index(commands: Iterable[Command]) -> NetIndex:
    """
    Collect the flash points of every net named by a .N object attribute.

    Args:
        commands: Parsed Gerber commands in file order

    Returns:
        Dict mapping net name -> flash points (mm) in file order
    """
    builder = NetIndexBuilder()
    for cmd in commands:
        builder.feed(cmd)
    return builder.index


def parse_net_index(text: str) -> NetIndex:
    """Parse Gerber text and build its net index."""
    return build_net_index(parse_gerber(text))
