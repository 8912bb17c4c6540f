# Copyright (c) 2025-2026, rocQuantum Developers.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Classical optimizer interface (Strategy Pattern).

The optimization loop only ever sees an objective ``params -> float`` and an
optional gradient ``params -> ndarray``; concrete strategies decide how to
iterate and when to stop.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from ..errors import ConfigurationError
from ..parameters import ParameterVector

logger = logging.getLogger(__name__)

Objective = Callable[[np.ndarray], float]
Gradient = Callable[[np.ndarray], np.ndarray]

DEFAULT_MAX_EVALUATIONS = 500


class OptimizerStatus(str, Enum):
    CONVERGED = "converged"
    MAX_EVALUATIONS = "max-evaluations"
    STALLED = "stalled"


@dataclass(frozen=True)
class OptimizerResult:
    """Best point found by an optimizer, with the reason it stopped."""
    energy: float
    params: ParameterVector
    status: OptimizerStatus
    n_evaluations: int
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.status is OptimizerStatus.CONVERGED


class EvaluationBudgetExhausted(Exception):
    """Internal signal used to break out of third-party minimizers."""
    pass


class EvaluationTracker:
    """
    Wraps an objective to count calls, remember the best point and enforce
    the evaluation budget.
    """

    def __init__(self, objective: Objective, max_evaluations: int):
        self._objective = objective
        self.max_evaluations = max_evaluations
        self.n_evaluations = 0
        self.best_energy = math.inf
        self.best_params: Optional[np.ndarray] = None

    @property
    def exhausted(self) -> bool:
        return self.n_evaluations >= self.max_evaluations

    def __call__(self, x) -> float:
        if self.exhausted:
            raise EvaluationBudgetExhausted()
        x = np.array(x, dtype=float).ravel()
        self.n_evaluations += 1
        value = float(self._objective(x))
        if value < self.best_energy or self.best_params is None:
            self.best_energy = value
            self.best_params = x.copy()
        return value

    def result(self, status: OptimizerStatus, message: str = "") -> OptimizerResult:
        if self.best_params is None:
            raise RuntimeError("The optimizer finished without evaluating the objective.")
        return OptimizerResult(
            energy=self.best_energy,
            params=ParameterVector(self.best_params.tolist()),
            status=status,
            n_evaluations=self.n_evaluations,
            message=message,
        )


def _positive_int(options: Mapping[str, Any], key: str) -> Optional[int]:
    if key not in options:
        return None
    value = options[key]
    error = ConfigurationError(f"Option '{key}' must be a positive integer, got {value!r}.")
    if isinstance(value, bool):
        raise error
    try:
        ivalue = int(value)
    except (TypeError, ValueError, OverflowError):
        raise error
    if isinstance(value, float) and value != ivalue:
        raise error
    if ivalue <= 0:
        raise error
    return ivalue


def _positive_float(options: Mapping[str, Any], key: str, default: float) -> float:
    value = options.get(key, default)
    try:
        fvalue = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Option '{key}' must be a positive number, got {value!r}.")
    if isinstance(value, bool) or not fvalue > 0 or not math.isfinite(fvalue):
        raise ConfigurationError(f"Option '{key}' must be a positive number, got {value!r}.")
    return fvalue


class Optimizer(ABC):
    """
    Abstract base class for classical optimizers.

    To add a new optimizer, subclass this, implement :meth:`minimize` and
    register it with :func:`qhybrid.core.register_optimizer`.

    Args:
        options (Mapping[str, Any], optional): Strategy options. Every
            strategy understands ``max-evaluations``; strategy-specific keys
            are prefixed with the strategy name (e.g. ``scipy-optimizer``).
    """

    name = "base"

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        self.options: Dict[str, Any] = dict(options or {})
        max_eval = _positive_int(self.options, f"{self.name}-maxeval")
        if max_eval is None:
            max_eval = _positive_int(self.options, "max-evaluations")
        self.max_evaluations = max_eval if max_eval is not None else DEFAULT_MAX_EVALUATIONS

    @property
    def requires_gradient(self) -> bool:
        """True if the strategy cannot run without an explicit gradient."""
        return False

    @property
    def uses_gradient(self) -> bool:
        """True if the strategy makes use of a gradient when one is supplied."""
        return self.requires_gradient

    @abstractmethod
    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        gradient: Optional[Gradient] = None,
    ) -> OptimizerResult:
        """
        Executes the minimization routine.

        Args:
            objective (Callable): Maps a parameter array to the energy.
            x0 (np.ndarray): The initial guess for the parameters.
            gradient (Callable, optional): Maps a parameter array to dE/dx.

        Returns:
            OptimizerResult: The best point seen. Reaching the evaluation
            budget is reported through ``status``, never raised.
        """
        pass

    def _check_gradient(self, gradient: Optional[Gradient]):
        if self.requires_gradient and gradient is None:
            raise ConfigurationError(
                f"Optimizer '{self.name}' ({self.describe()}) requires a gradient; "
                "set 'gradient-strategy' to 'forward', 'central' or 'parameter-shift'."
            )

    def describe(self) -> str:
        return self.name

    def __repr__(self):
        return f"<{type(self).__name__} {self.describe()} max_evaluations={self.max_evaluations}>"
