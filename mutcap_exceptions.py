"""
Mutual Capacitance Exceptions

Exception classes for the capacitance pipeline, allowing stages to report
fatal problems through exceptions instead of sys.exit() calls.
"""

from typing import Optional, Tuple


class MutcapError(Exception):
    """Base exception for all capacitance estimation errors."""
    pass


class GerberParseError(MutcapError):
    """Raised when a Gerber block has a recognized shape but bad contents."""

    def __init__(self, text: str, message: str = ""):
        self.text = text
        super().__init__(message or f"Malformed Gerber data: {text!r}")


class DimensionMismatchError(MutcapError):
    """Raised when layer bitmaps do not share the same width and height."""

    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int],
                 layer: Optional[int] = None, message: str = ""):
        self.expected = expected
        self.actual = actual
        self.layer = layer
        where = f" (layer {layer})" if layer is not None else ""
        super().__init__(message or
                         f"Incoherent dimensions{where}: {expected} vs {actual}")


class MissingLayersError(MutcapError):
    """Raised when no layers are supplied."""

    def __init__(self, message: str = ""):
        super().__init__(message or "No layers")


class ConfigurationError(MutcapError):
    """Raised when the run configuration is invalid."""
    pass


class InputFileError(MutcapError):
    """Raised when an input file cannot be read or decoded."""
    pass


class OutputFileError(MutcapError):
    """Raised when an output file cannot be written."""
    pass


class DependencyError(MutcapError):
    """Raised when required Python dependencies are missing."""

    def __init__(self, missing_packages: list, message: str = ""):
        self.missing_packages = missing_packages
        super().__init__(message or f"Missing dependencies: {', '.join(missing_packages)}")
