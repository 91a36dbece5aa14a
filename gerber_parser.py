"""
Gerber Parser - Splits RS-274X text into blocks and classifies each block
into a typed command.

The parser is tolerant: blocks it does not recognize are kept as Unknown
commands carrying their raw text. It only fails on malformed numbers inside
a recognized block shape, or on an extended block that is never closed.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union

from aperture_macro import EvaluatedPrimitive, MacroStatement, evaluate_macro, parse_macro_body
from mutcap_exceptions import GerberParseError, InputFileError

logger = logging.getLogger(__name__)

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1


class AttributeTarget(Enum):
    FILE = 'F'
    APERTURE = 'A'
    OBJECT = 'O'


class OperationKind(Enum):
    INTERPOLATE = '01'
    MOVE = '02'
    FLASH = '03'


class Polarity(Enum):
    DARK = 'D'
    CLEAR = 'C'


class UnitMode(Enum):
    MILLIMETERS = 'MM'
    INCHES = 'IN'


class InterpolationMode(Enum):
    LINEAR = '01'
    CIRCULAR_CLOCKWISE = '02'
    CIRCULAR_COUNTERCLOCKWISE = '03'
    SINGLE_QUADRANT = '74'
    MULTI_QUADRANT = '75'


@dataclass(frozen=True)
class CoordinateFormat:
    """Number of integer and decimal digits of one coordinate axis."""
    integer: int
    decimal: int

    @classmethod
    def from_digits(cls, digits: int) -> 'CoordinateFormat':
        """Build from the two-digit FS field, e.g. 46 -> 4 integer, 6 decimal."""
        return cls(integer=digits // 10, decimal=digits % 10)

    def to_real(self, value: int) -> float:
        return value / 10 ** self.decimal


# ---- commands ----

@dataclass(frozen=True)
class DefineAttribute:
    target: AttributeTarget
    name: str
    values: List[str]


@dataclass(frozen=True)
class DeleteAttribute:
    name: Optional[str] = None


@dataclass(frozen=True)
class Operation:
    op: OperationKind
    x: int
    y: int


@dataclass(frozen=True)
class SetCoordinateFormat:
    x: CoordinateFormat
    y: CoordinateFormat


@dataclass(frozen=True)
class SetAperture:
    code: int


@dataclass(frozen=True)
class DefineAperture:
    code: int
    template: str  # C, R, O, P or an aperture macro name
    params: List[float]


@dataclass(frozen=True)
class ApertureMacro:
    name: str
    contents: Tuple[MacroStatement, ...]

    def evaluate(self, params) -> List[EvaluatedPrimitive]:
        """Instantiate the macro with aperture parameters bound to $1, $2, ..."""
        return evaluate_macro(self.contents, params)


@dataclass(frozen=True)
class LoadPolarity:
    polarity: Polarity


@dataclass(frozen=True)
class SetMode:
    mode: UnitMode


@dataclass(frozen=True)
class Interpolation:
    mode: InterpolationMode


@dataclass(frozen=True)
class BeginRegion:
    pass


@dataclass(frozen=True)
class EndRegion:
    pass


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class EndOfFile:
    pass


EOF = EndOfFile


@dataclass(frozen=True)
class Unknown:
    raw: str


Command = Union[DefineAttribute, DeleteAttribute, Operation, SetCoordinateFormat,
                SetAperture, DefineAperture, ApertureMacro, LoadPolarity, SetMode,
                Interpolation, BeginRegion, EndRegion, Comment, EndOfFile, Unknown]


# ---- block shapes ----

_OPERATION_RE = re.compile(r'^X([+-]?[0-9]+)Y([+-]?[0-9]+)D(0[123])$')
_COMMENT_RE = re.compile(r'^G04(?: (.*))?$')
_SELECT_APERTURE_RE = re.compile(r'^D([1-9][0-9]+)$')
_INTERPOLATION_RE = re.compile(r'^G(01|02|03|74|75)$')

_ATTRIBUTE_RE = re.compile(r'^T([FAO])(?:[FAO](?=\.))?([^,]+)((?:,[^,]*)*)$')
_DELETE_ATTRIBUTE_RE = re.compile(r'^TD(.+)?$')
_FORMAT_RE = re.compile(r'^FSLAX([0-9]{2})Y([0-9]{2})$')
_MODE_RE = re.compile(r'^MO(MM|IN)$')
_POLARITY_RE = re.compile(r'^LP([DC])$')
_MACRO_RE = re.compile(r'^AM([^*]+)\*(.*)$', re.DOTALL)
_DEFINE_APERTURE_RE = re.compile(r'^ADD([1-9][0-9]+)([A-Za-z_.$][^,]*?)(?:,(.*))?$')


def _remove_crlf(text: str) -> str:
    return text.replace('\r', '').replace('\n', '')


def _parse_int32(text: str, block: str) -> int:
    value = int(text)
    if not INT32_MIN <= value <= INT32_MAX:
        raise GerberParseError(text, f"Coordinate {text} out of 32-bit range in block {block!r}")
    return value


def _parse_float(text: str, block: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise GerberParseError(text, f"Invalid number {text!r} in block {block!r}") from exc


def split_blocks(text: str) -> Iterator[Tuple[bool, str]]:
    """Split Gerber text into (is_extended, payload) blocks.

    Plain blocks end at '*'. Extended blocks are everything between a pair
    of '%'; a trailing '*' of the payload is dropped. CR/LF are removed from
    both kinds.

    Raises:
        GerberParseError: on a '%' without a closing '%'
    """
    pos = 0
    n = len(text)
    while pos < n:
        c = text[pos]
        if c == '%':
            end = text.find('%', pos + 1)
            if end < 0:
                raise GerberParseError(text[pos:], f"Unterminated extended block: {text[pos:pos + 40]!r}")
            payload = _remove_crlf(text[pos + 1:end])
            if payload.endswith('*'):
                payload = payload[:-1]
            yield True, payload
            pos = end + 1
        elif c in ' \t\r\n':
            pos += 1
        else:
            star = text.find('*', pos)
            pct = text.find('%', pos)
            if star < 0 or (0 <= pct < star):
                # Text with no '*' before the next extended block or EOF
                stop = pct if pct >= 0 else n
                payload = _remove_crlf(text[pos:stop]).strip()
                if payload:
                    yield False, payload
                pos = stop
            else:
                yield False, _remove_crlf(text[pos:star])
                pos = star + 1


def classify_extended(payload: str) -> Optional[Command]:
    """Classify the payload of a %...% block. Returns None if unrecognized."""
    m = _ATTRIBUTE_RE.match(payload)
    if m:
        target = AttributeTarget(m.group(1))
        values = m.group(3)[1:].split(',') if m.group(3) else []
        return DefineAttribute(target=target, name=m.group(2), values=values)

    m = _DELETE_ATTRIBUTE_RE.match(payload)
    if m:
        return DeleteAttribute(name=m.group(1))

    m = _FORMAT_RE.match(payload)
    if m:
        return SetCoordinateFormat(x=CoordinateFormat.from_digits(int(m.group(1))),
                                   y=CoordinateFormat.from_digits(int(m.group(2))))

    m = _MODE_RE.match(payload)
    if m:
        return SetMode(UnitMode(m.group(1)))

    m = _POLARITY_RE.match(payload)
    if m:
        return LoadPolarity(Polarity(m.group(1)))

    m = _MACRO_RE.match(payload)
    if m:
        contents = parse_macro_body(m.group(2))
        if contents is None:
            return None
        return ApertureMacro(name=m.group(1), contents=contents)

    m = _DEFINE_APERTURE_RE.match(payload)
    if m:
        params_text = m.group(3)
        params: List[float] = []
        if params_text:
            params = [_parse_float(p, payload) for p in params_text.split('X')]
        return DefineAperture(code=int(m.group(1)), template=m.group(2), params=params)

    return None


def classify_plain(payload: str) -> Optional[Command]:
    """Classify a '*'-terminated block. Returns None if unrecognized."""
    m = _OPERATION_RE.match(payload)
    if m:
        return Operation(op=OperationKind(m.group(3)),
                         x=_parse_int32(m.group(1), payload),
                         y=_parse_int32(m.group(2), payload))

    m = _COMMENT_RE.match(payload)
    if m:
        return Comment(m.group(1) or '')

    m = _SELECT_APERTURE_RE.match(payload)
    if m:
        return SetAperture(int(m.group(1)))

    if payload == 'M02':
        return EndOfFile()
    if payload == 'G36':
        return BeginRegion()
    if payload == 'G37':
        return EndRegion()

    m = _INTERPOLATION_RE.match(payload)
    if m:
        return Interpolation(InterpolationMode(m.group(1)))

    # Attribute statements are sometimes written without % delimiters
    return classify_extended(payload)


def parse_gerber(text: str) -> List[Command]:
    """
    Parse Gerber text into an ordered list of commands.

    Args:
        text: Full Gerber file contents

    Returns:
        Commands in file order; unrecognized blocks become Unknown

    Raises:
        GerberParseError: on malformed numbers or an unterminated extended block
    """
    commands: List[Command] = []
    seen_eof = False
    for is_extended, payload in split_blocks(text):
        cmd = classify_extended(payload) if is_extended else classify_plain(payload)
        if cmd is None:
            logger.debug("Unrecognized Gerber block: %s", payload)
            cmd = Unknown(payload)
        if seen_eof:
            logger.warning("Junk after end of file: %s", payload)
        if isinstance(cmd, EndOfFile):
            seen_eof = True
        commands.append(cmd)
    return commands


def read_gerber_text(path: str) -> str:
    """Read a Gerber file as text; undecodable bytes are replaced."""
    try:
        with open(path, 'r', encoding='utf-8', errors='replace') as f:
            return f.read()
    except OSError as e:
        raise InputFileError(f"Cannot read Gerber file {path}: {e}") from e


def parse_gerber_file(path: str) -> List[Command]:
    """Read and parse a Gerber file."""
    return parse_gerber(read_gerber_text(path))
