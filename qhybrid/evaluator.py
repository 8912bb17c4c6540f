# qhybrid/evaluator.py

"""
Energy and gradient evaluation on top of an external kernel executor.
"""

import logging
import math
import threading
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from .cache import EvaluationCache
from .errors import ConfigurationError, ExecutorFailure, RunCancelled
from .executors.base import as_executor
from .kernel import KernelBinding
from .operator import Basis, Observable, ObservableTerm
from .parameters import ParameterVector
from .utils.expectation import expectation_from_counts, is_counts

logger = logging.getLogger(__name__)

GRADIENT_STRATEGIES = ("none", "forward", "central", "parameter-shift")

DEFAULT_STEP_SIZE = 1e-4
DEFAULT_SHIFT = math.pi / 2.0

# Tolerance before an out-of-range Pauli expectation is reported.
_RANGE_SLACK = 1e-9


class ExpectationEvaluator:
    """
    Computes <H>(params) for a bound kernel and a decomposed observable.

    Every distinct parameter vector is sent to the executor at most once:
    results are stored in the EvaluationCache before they are returned, and
    gradient evaluation points are ordinary evaluations that go through the same cache.

    Args:
        kernel (KernelBinding): The parameterized program.
        observable (Observable): The Hamiltonian to measure.
        executor: An Executor or a callable ``f(kernel, params, basis)``.
        cache (EvaluationCache, optional): Shared cache; a new one is created
            when omitted.
        gradient_strategy (str): One of "none", "forward", "central",
            "parameter-shift".
        step_size (float): Finite-difference step ``h``.
        shift (float): Parameter-shift angle ``s``.
    """

    def __init__(
        self,
        kernel: KernelBinding,
        observable: Observable,
        executor,
        cache: Optional[EvaluationCache] = None,
        gradient_strategy: str = "none",
        step_size: float = DEFAULT_STEP_SIZE,
        shift: float = DEFAULT_SHIFT,
    ):
        if gradient_strategy not in GRADIENT_STRATEGIES:
            raise ConfigurationError(
                f"Unknown gradient strategy '{gradient_strategy}'. Expected one of {list(GRADIENT_STRATEGIES)}."
            )
        if not step_size > 0:
            raise ConfigurationError(f"Finite-difference step must be positive, got {step_size}.")
        if gradient_strategy == "parameter-shift" and abs(math.sin(shift)) < 1e-12:
            raise ConfigurationError(f"Parameter-shift angle {shift} has sin(shift) == 0.")

        self.kernel = kernel
        self.observable = observable
        self.executor = as_executor(executor)
        self.cache = cache if cache is not None else EvaluationCache()
        self.gradient_strategy = gradient_strategy
        self.step_size = float(step_size)
        self.shift = float(shift)
        self.cancel_event: Optional[threading.Event] = None
        self._executor_calls = 0

        # Terms sharing a basis are measured once.
        self._bases: Tuple[Basis, ...] = tuple(dict.fromkeys(t.basis for t in observable.measured_terms()))

    @property
    def executor_calls(self) -> int:
        return self._executor_calls

    @property
    def bases_per_evaluation(self) -> int:
        return len(self._bases)

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------

    def evaluate(self, params) -> Tuple[float, Mapping[ObservableTerm, float]]:
        """Returns ``(energy, term_values)`` for ``params``, executing only on a cache miss."""
        params = ParameterVector.from_value(params)
        record = self.cache.lookup(params)
        if record is not None:
            logger.debug(f"Cache hit for {list(params)}: {record.energy:.10f}")
            return record.energy, record.term_values

        if self.kernel.arity is not None and len(params) != self.kernel.arity:
            raise ConfigurationError(
                f"Kernel '{self.kernel.name}' expects {self.kernel.arity} parameter(s), got {len(params)}."
            )

        basis_values = self._measure(params)

        energy = self.observable.constant_offset()
        term_values: Dict[ObservableTerm, float] = {}
        for term in self.observable.terms():
            value = 1.0 if term.is_identity else basis_values[term.basis]
            term_values[term] = value
            if not term.is_identity:
                energy += term.coefficient * value

        record = self.cache.insert(params, energy, term_values)
        logger.debug(f"Evaluated parameters {list(params)}, Energy: {record.energy:.8f}")
        return record.energy, record.term_values

    def energy(self, params) -> float:
        """Objective callable handed to optimizers."""
        return self.evaluate(params)[0]

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RunCancelled("The run was cancelled before the next executor call.")

    def _measure(self, params: ParameterVector) -> Dict[Basis, float]:
        if not self._bases:
            return {}

        if self.executor.batched:
            self._check_cancelled()
            self._executor_calls += 1
            try:
                results = list(self.executor.execute_batch(self.kernel, params, self._bases))
            except RunCancelled:
                raise
            except Exception as e:
                raise ExecutorFailure(f"Batched execution failed for parameters {list(params)}: {e}") from e
            if len(results) != len(self._bases):
                raise ExecutorFailure(
                    f"Executor returned {len(results)} result(s) for {len(self._bases)} measurement bases."
                )
            return {basis: self._reduce(basis, result) for basis, result in zip(self._bases, results)}

        values = {}
        for basis in self._bases:
            self._check_cancelled()
            self._executor_calls += 1
            try:
                result = self.executor.execute(self.kernel, params, basis)
            except RunCancelled:
                raise
            except Exception as e:
                raise ExecutorFailure(
                    f"Executor failed for parameters {list(params)} in basis {_basis_str(basis)}: {e}"
                ) from e
            values[basis] = self._reduce(basis, result)
        return values

    def _reduce(self, basis: Basis, result) -> float:
        try:
            if is_counts(result):
                value = expectation_from_counts(result, [q for q, _ in basis])
            else:
                value = float(result)
        except (TypeError, ValueError) as e:
            raise ExecutorFailure(f"Unusable executor result for basis {_basis_str(basis)}: {e}") from e
        if not math.isfinite(value):
            raise ExecutorFailure(f"Executor returned a non-finite value for basis {_basis_str(basis)}.")
        if abs(value) > 1.0 + _RANGE_SLACK:
            logger.warning(f"Expectation value {value} for basis {_basis_str(basis)} is outside [-1, 1].")
        return value

    # ------------------------------------------------------------------
    # Gradient
    # ------------------------------------------------------------------

    @property
    def has_gradient(self) -> bool:
        return self.gradient_strategy != "none"

    def gradient(self, params) -> np.ndarray:
        """
        Estimates dE/dparams with the configured strategy.

        Each gradient point is a distinct cache key, so asking for the gradient
        at the same point twice costs no further executor calls.
        """
        if not self.has_gradient:
            raise ConfigurationError("No gradient strategy configured (gradient-strategy is 'none').")
        params = ParameterVector.from_value(params)
        grad = np.zeros(len(params), dtype=float)

        if self.gradient_strategy == "forward":
            h = self.step_size
            f0 = self.energy(params)
            for i in range(len(params)):
                grad[i] = (self.energy(params.shifted(i, h)) - f0) / h
        elif self.gradient_strategy == "central":
            h = self.step_size
            for i in range(len(params)):
                grad[i] = (self.energy(params.shifted(i, h)) - self.energy(params.shifted(i, -h))) / (2.0 * h)
        else:
            s = self.shift
            denom = 2.0 * math.sin(s)
            for i in range(len(params)):
                grad[i] = (self.energy(params.shifted(i, s)) - self.energy(params.shifted(i, -s))) / denom

        logger.debug(f"Gradient ({self.gradient_strategy}) at {list(params)}: {grad.tolist()}")
        return grad


def _basis_str(basis: Basis) -> str:
    return " ".join(f"{axis}{qubit}" for qubit, axis in basis) or "I"
