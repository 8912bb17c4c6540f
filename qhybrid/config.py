# qhybrid/config.py

"""
Run configuration for the VQE driver.

Options are given as a flat mapping with hyphenated keys, e.g.::

    {"algorithm": "scipy", "gradient-strategy": "central",
     "max-evaluations": 200, "scipy-optimizer": "l-bfgs"}

Keys not recognized here are handed verbatim to the selected optimizer.
Process-wide defaults can be set through environment variables:

    QHYBRID_DEFAULT_OPTIMIZER   registered optimizer name (default 'scipy')
    QHYBRID_MAX_EVALUATIONS     objective evaluation budget (default 500)
"""

import math
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .core import available_optimizers, create_optimizer, is_registered
from .errors import ConfigurationError
from .evaluator import DEFAULT_SHIFT, DEFAULT_STEP_SIZE, GRADIENT_STRATEGIES
from .optimizers.base import DEFAULT_MAX_EVALUATIONS, Optimizer

ENV_DEFAULT_OPTIMIZER = "QHYBRID_DEFAULT_OPTIMIZER"
ENV_MAX_EVALUATIONS = "QHYBRID_MAX_EVALUATIONS"

_KEY_TO_FIELD = {
    "algorithm": "algorithm",
    "max-evaluations": "max_evaluations",
    "gradient-strategy": "gradient_strategy",
    "step-size": "step_size",
    "shift-angle": "shift",
}


def default_algorithm() -> str:
    return os.getenv(ENV_DEFAULT_OPTIMIZER) or "scipy"


def default_max_evaluations() -> int:
    raw = os.getenv(ENV_MAX_EVALUATIONS)
    if not raw:
        return DEFAULT_MAX_EVALUATIONS
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_MAX_EVALUATIONS} must be a positive integer, got '{raw}'.")
    if value <= 0:
        raise ConfigurationError(f"{ENV_MAX_EVALUATIONS} must be a positive integer, got '{raw}'.")
    return value


@dataclass(frozen=True)
class OptimizerConfig:
    """Validated optimizer and gradient settings for one VQE driver."""
    algorithm: str = field(default_factory=default_algorithm)
    max_evaluations: int = field(default_factory=default_max_evaluations)
    gradient_strategy: str = "none"
    step_size: float = DEFAULT_STEP_SIZE
    shift: float = DEFAULT_SHIFT
    options: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not isinstance(self.algorithm, str) or not is_registered(self.algorithm):
            raise ConfigurationError(
                f"Optimizer '{self.algorithm}' not recognized. Available: {available_optimizers()}"
            )
        if isinstance(self.max_evaluations, bool) or not isinstance(self.max_evaluations, int) \
                or self.max_evaluations <= 0:
            raise ConfigurationError(f"'max-evaluations' must be a positive integer, got {self.max_evaluations!r}.")
        if self.gradient_strategy not in GRADIENT_STRATEGIES:
            raise ConfigurationError(
                f"Unknown gradient strategy '{self.gradient_strategy}'. Expected one of {list(GRADIENT_STRATEGIES)}."
            )
        for key, value in (("step-size", self.step_size), ("shift-angle", self.shift)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"'{key}' must be a finite number, got {value!r}.")
        if not self.step_size > 0:
            raise ConfigurationError(f"'step-size' must be positive, got {self.step_size!r}.")
        if abs(math.sin(self.shift)) < 1e-12:
            raise ConfigurationError(f"'shift-angle' {self.shift} has sin(shift) == 0.")
        if not isinstance(self.options, Mapping):
            raise ConfigurationError("Optimizer options must be a mapping.")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]] = None) -> "OptimizerConfig":
        if mapping is None:
            return cls()
        if isinstance(mapping, OptimizerConfig):
            return mapping
        if not isinstance(mapping, Mapping):
            raise ConfigurationError(f"VQE options must be a mapping, got {type(mapping).__name__}.")

        kwargs: Dict[str, Any] = {}
        passthrough: Dict[str, Any] = {}
        for key, value in mapping.items():
            if key in _KEY_TO_FIELD:
                kwargs[_KEY_TO_FIELD[key]] = value
            else:
                passthrough[key] = value
        if "max_evaluations" in kwargs and isinstance(kwargs["max_evaluations"], str):
            try:
                kwargs["max_evaluations"] = int(kwargs["max_evaluations"])
            except ValueError:
                raise ConfigurationError(
                    f"'max-evaluations' must be a positive integer, got {kwargs['max_evaluations']!r}."
                )
        for key, name in (("step-size", "step_size"), ("shift-angle", "shift")):
            if isinstance(kwargs.get(name), str):
                try:
                    kwargs[name] = float(kwargs[name])
                except ValueError:
                    raise ConfigurationError(f"'{key}' must be a number, got {kwargs[name]!r}.")
        return cls(options=passthrough, **kwargs)

    def optimizer_options(self) -> Dict[str, Any]:
        options = dict(self.options)
        options.setdefault("max-evaluations", self.max_evaluations)
        return options

    def create_optimizer(self) -> Optimizer:
        return create_optimizer(self.algorithm, self.optimizer_options())
