"""
Run configuration for mutual capacitance estimation.

A configuration file is JSON:

    {
        "input": "boards/demo",
        "output": "out/demo",
        "layers": [
            {"name": "top", "bitmap": "top.png", "gerber": "top.gbr"},
            {"name": "bottom", "bitmap": "bottom.png", "gerber": "bottom.gbr"}
        ],
        "origin": {"x": 0.0, "y": 0.0},
        "dpi": 600,
        "eps_rel": 4.2,
        "thickness": 1.6,
        "cap_min": 1e-13,
        "mark": {"x": 10.0, "y": 20.0},
        "roi": {"p0": {"x": 0, "y": 0}, "p1": {"x": 50, "y": 50}}
    }

Bitmap and Gerber paths are relative to "input". "mark" and "roi" are
optional; "roi" is carried but not used by the analysis.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from mutcap_exceptions import ConfigurationError, InputFileError
from mutcap_pipeline import AnalysisParameters

Point = Tuple[float, float]


@dataclass
class LayerConfig:
    """One copper layer: display name plus its bitmap and Gerber files."""
    name: str
    bitmap: str
    gerber: str


@dataclass
class MutcapConfig:
    """Configuration of one estimation run."""
    input: str
    output: str
    layers: List[LayerConfig]
    origin: Point
    dpi: float
    eps_rel: float
    thickness: float  # mm
    cap_min: float  # F
    mark: Optional[Point] = None
    roi: Optional[Tuple[Point, Point]] = None
    extra: Dict[str, Any] = field(default_factory=dict)  # unrecognized keys

    @property
    def layer_names(self) -> List[str]:
        return [layer.name for layer in self.layers]

    def bitmap_paths(self) -> List[str]:
        return [os.path.join(self.input, layer.bitmap) for layer in self.layers]

    def gerber_paths(self) -> List[str]:
        return [os.path.join(self.input, layer.gerber) for layer in self.layers]

    def to_parameters(self) -> AnalysisParameters:
        return AnalysisParameters(
            dpi=self.dpi,
            origin=self.origin,
            eps_rel=self.eps_rel,
            thickness=self.thickness,
            cap_min=self.cap_min,
            mark=self.mark,
        )


_REQUIRED_KEYS = ('input', 'output', 'layers', 'origin', 'dpi', 'eps_rel', 'thickness', 'cap_min')


def _point(value: Any, key: str) -> Point:
    try:
        return (float(value['x']), float(value['y']))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be an object with numeric x and y: {value!r}") from e


def _number(data: Dict[str, Any], key: str) -> float:
    try:
        return float(data[key])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be a number, got {data[key]!r}") from e


def config_from_dict(data: Dict[str, Any]) -> MutcapConfig:
    """
    Build and validate a configuration from parsed JSON.

    Raises:
        ConfigurationError: on missing keys or invalid values
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a JSON object")
    missing = [k for k in _REQUIRED_KEYS if k not in data]
    if missing:
        raise ConfigurationError(f"Missing configuration keys: {', '.join(missing)}")

    layers = []
    if not isinstance(data['layers'], list) or not data['layers']:
        raise ConfigurationError("'layers' must be a non-empty list")
    for i, entry in enumerate(data['layers']):
        try:
            layers.append(LayerConfig(name=str(entry['name']),
                                      bitmap=str(entry['bitmap']),
                                      gerber=str(entry['gerber'])))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Layer {i} needs name, bitmap and gerber: {entry!r}") from e

    mark = _point(data['mark'], 'mark') if data.get('mark') is not None else None
    roi = None
    if data.get('roi') is not None:
        try:
            roi = (_point(data['roi']['p0'], 'roi.p0'), _point(data['roi']['p1'], 'roi.p1'))
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"'roi' needs p0 and p1: {data['roi']!r}") from e

    config = MutcapConfig(
        input=str(data['input']),
        output=str(data['output']),
        layers=layers,
        origin=_point(data['origin'], 'origin'),
        dpi=_number(data, 'dpi'),
        eps_rel=_number(data, 'eps_rel'),
        thickness=_number(data, 'thickness'),
        cap_min=_number(data, 'cap_min'),
        mark=mark,
        roi=roi,
        extra={k: v for k, v in data.items() if k not in _REQUIRED_KEYS + ('mark', 'roi')},
    )
    config.to_parameters().validate()
    return config


def load_config(path: str) -> MutcapConfig:
    """Load a JSON configuration file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise InputFileError(f"Cannot read configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    return config_from_dict(data)
