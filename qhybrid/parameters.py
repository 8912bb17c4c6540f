from __future__ import annotations

import math
from numbers import Real
from typing import Iterable, Iterator, Sequence, Union

import numpy as np

from .errors import ConfigurationError


class ParameterVector:
    """An immutable, hashable point in parameter space.

    Two vectors are equal iff every element compares equal as a float, so a
    vector can be used directly as a cache key. Scalars and sequences are both
    accepted through :meth:`from_value`.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[float]):
        converted = []
        for value in values:
            if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.floating, np.integer)):
                raise ConfigurationError(f"Parameter values must be real numbers, got {value!r}.")
            value = float(value)
            if not math.isfinite(value):
                raise ConfigurationError(f"Parameter values must be finite, got {value}.")
            converted.append(value)
        self._values = tuple(converted)

    @classmethod
    def from_value(cls, value: Union["ParameterVector", Real, Sequence[float], np.ndarray]) -> "ParameterVector":
        if isinstance(value, ParameterVector):
            return value
        if isinstance(value, np.ndarray):
            return cls(value.ravel().tolist())
        if isinstance(value, (Real, np.floating, np.integer)) and not isinstance(value, bool):
            return cls([value])
        if isinstance(value, (str, bytes)):
            raise ConfigurationError(f"Cannot build a parameter vector from {value!r}.")
        try:
            return cls(list(value))
        except TypeError:
            raise ConfigurationError(f"Cannot build a parameter vector from {value!r}.")

    @property
    def values(self) -> tuple:
        return self._values

    def to_numpy(self) -> np.ndarray:
        return np.array(self._values, dtype=float)

    def shifted(self, index: int, delta: float) -> "ParameterVector":
        """Returns a copy with ``delta`` added to element ``index``."""
        values = list(self._values)
        values[index] += delta
        return ParameterVector(values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __getitem__(self, index):
        return self._values[index]

    def __eq__(self, other):
        if not isinstance(other, ParameterVector):
            return NotImplemented
        return self._values == other._values

    def __hash__(self):
        return hash(self._values)

    def __repr__(self):
        return f"ParameterVector({list(self._values)})"
