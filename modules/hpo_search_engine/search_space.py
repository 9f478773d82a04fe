"""
Declarative hyperparameter spaces and immutable candidate configurations.
"""
import hashlib
import json
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Tuple

from utils.exceptions import ConfigurationError
from utils.file_io import NumpyEncoder


@dataclass(frozen=True)
class HyperParameter:
    """One tunable parameter: integer or float, inclusive range, linear or log10 scale."""
    name: str
    kind: str
    low: float
    high: float
    scale: str = 'linear'

    def __post_init__(self):
        if self.kind not in ('int', 'float'):
            raise ConfigurationError(f"Parameter '{self.name}': type must be 'int' or 'float', got '{self.kind}'")
        if self.scale not in ('linear', 'log'):
            raise ConfigurationError(f"Parameter '{self.name}': scale must be 'linear' or 'log', got '{self.scale}'")
        if not self.low <= self.high:
            raise ConfigurationError(f"Parameter '{self.name}': low ({self.low}) must be <= high ({self.high})")
        if self.kind == 'int' and math.ceil(self.low) > math.floor(self.high):
            raise ConfigurationError(
                f"Parameter '{self.name}': integer range [{self.low}, {self.high}] contains no integer"
            )
        if self.scale == 'log' and self.low <= 0:
            raise ConfigurationError(f"Parameter '{self.name}': log scale requires low > 0, got {self.low}")

    def from_unit(self, u: float) -> Any:
        """Map a coordinate in [0, 1) onto the parameter's range."""
        if self.kind == 'int':
            low, high = int(math.ceil(self.low)), int(math.floor(self.high))
            if self.scale == 'log':
                value = math.exp(math.log(low) + u * (math.log(high + 1) - math.log(low)))
            else:
                value = low + u * (high - low + 1)
            # Equal-width bins over the inclusive integer range
            return int(min(max(math.floor(value), low), high))

        if self.scale == 'log':
            lo, hi = math.log10(self.low), math.log10(self.high)
            return float(10 ** (lo + u * (hi - lo)))
        return float(self.low + u * (self.high - self.low))


@dataclass(frozen=True)
class HyperparameterSpace:
    """Ordered collection of tunable parameters for one model family."""
    parameters: Tuple[HyperParameter, ...] = ()

    def __post_init__(self):
        names = [p.name for p in self.parameters]
        if len(names) != len(set(names)):
            raise ConfigurationError(f"Duplicate parameter names in space: {names}")

    def __len__(self) -> int:
        return len(self.parameters)

    def __iter__(self) -> Iterator[HyperParameter]:
        return iter(self.parameters)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    @classmethod
    def from_dict(cls, spec: Mapping[str, Mapping[str, Any]]) -> "HyperparameterSpace":
        """
        Build a space from the config layout:
        {"learning_rate": {"type": "float", "low": 0.001, "high": 0.3, "scale": "log"}}
        """
        params = []
        for name, entry in spec.items():
            try:
                params.append(HyperParameter(
                    name=name,
                    kind=entry['type'],
                    low=entry['low'],
                    high=entry['high'],
                    scale=entry.get('scale', 'linear'),
                ))
            except KeyError as e:
                raise ConfigurationError(f"Parameter '{name}' is missing key {e}") from e
        return cls(tuple(params))

    def override(self, spec: Mapping[str, Mapping[str, Any]]) -> "HyperparameterSpace":
        """Replace the ranges of known parameters; unknown names are rejected."""
        unknown = [n for n in spec if n not in self.names]
        if unknown:
            raise ConfigurationError(f"Unknown parameters {unknown}; space declares {list(self.names)}")
        replacements = HyperparameterSpace.from_dict(spec)
        by_name = {p.name: p for p in replacements}
        return HyperparameterSpace(tuple(by_name.get(p.name, p) for p in self.parameters))


@dataclass(frozen=True)
class Configuration:
    """
    One candidate: a model family plus parameter values.

    `generation_index` records the order of generation and is only used to
    break ranking ties.
    """
    model_name: str
    params: Mapping[str, Any] = field(default_factory=dict)
    generation_index: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'params', MappingProxyType(dict(self.params)))

    def __reduce__(self):
        # mappingproxy cannot be pickled; joblib workers need the configuration
        return (Configuration, (self.model_name, dict(self.params), self.generation_index))

    def __hash__(self):
        return hash((self.model_name, self.config_id, self.generation_index))

    @property
    def config_id(self) -> str:
        signature = json.dumps({'model': self.model_name, 'params': dict(self.params)},
                               sort_keys=True, cls=NumpyEncoder)
        return hashlib.md5(signature.encode()).hexdigest()

    def as_dict(self) -> Dict[str, Any]:
        return {
            'config_id': self.config_id,
            'generation_index': self.generation_index,
            'model': self.model_name,
            'params': dict(self.params),
        }
