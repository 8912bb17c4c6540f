# Copyright (c) 2025-2026, rocQuantum Developers.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
High-level Variational Quantum Eigensolver (VQE) driver.

The driver owns the kernel/observable binding, an EvaluationCache, an
ExpectationEvaluator and an Optimizer strategy, and runs the classical
optimization loop either on the caller's thread or on a worker thread.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, List, Mapping, NamedTuple, Optional, Tuple, Union

from ..cache import EvaluationCache, EvaluationRecord
from ..config import OptimizerConfig
from ..core import get_default_executor
from ..errors import ConfigurationError, DriverStateError, ResultConsumedError, RunCancelled
from ..evaluator import ExpectationEvaluator
from ..executors.base import as_executor
from ..kernel import KernelBinding, bind_kernel
from ..operator import Observable, as_observable
from ..optimizers.base import Optimizer, OptimizerResult, OptimizerStatus
from ..parameters import ParameterVector

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    CONFIGURED = "configured"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionResult(NamedTuple):
    energy: float
    params: ParameterVector


class ExecutionHandle:
    """
    Future-like handle for a run started with :meth:`VQE.execute_async`.

    The result can be retrieved exactly once. Cancellation is cooperative: the
    run stops before its next executor call.
    """

    def __init__(self, future, cancel_event: threading.Event, driver: "VQE"):
        self._future = future
        self._cancel_event = cancel_event
        self._driver = driver
        self._consumed = False
        self._lock = threading.Lock()

    def is_ready(self) -> bool:
        return self._future.done()

    def get(self, timeout: Optional[float] = None) -> ExecutionResult:
        """
        Blocks until the run finishes and returns ``(energy, params)``.

        Raises:
            ResultConsumedError: If the result was already retrieved.
            concurrent.futures.TimeoutError: If ``timeout`` elapses first.
            ExecutorFailure, RunCancelled: If the run ended that way.
        """
        with self._lock:
            if self._consumed:
                raise ResultConsumedError("The result of this run has already been retrieved.")
        try:
            result = self._future.result(timeout=timeout)
        except FutureTimeoutError:
            raise
        except BaseException:
            self._mark_consumed()
            raise
        self._mark_consumed()
        return result

    def _mark_consumed(self):
        with self._lock:
            if self._consumed:
                raise ResultConsumedError("The result of this run has already been retrieved.")
            self._consumed = True

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def state(self) -> RunState:
        return self._driver.state


class VQE:
    """
    A hybrid quantum-classical driver for the Variational Quantum Eigensolver.

    Args:
        kernel: The parameterized program, a callable ``f(q, x)`` /
            ``f(q, xs)`` / ``f(q, a, b, ...)`` or a KernelBinding.
        observable: An Observable, a Pauli-string mapping such as
            ``{"X0 X1": -2.1433, "I": 5.907}``, or ``(coefficient, basis)`` pairs.
        options (Mapping or OptimizerConfig, optional): Run options, e.g.
            ``{"gradient-strategy": "central"}``. Defaults to the derivative-free
            scipy COBYLA strategy.
        executor (optional): Executor or callable ``f(kernel, params, basis)``.
            Defaults to the executor set with
            :func:`qhybrid.core.set_default_executor`.

    Raises:
        ConfigurationError: For unknown optimizers, malformed options or a
            missing executor.
    """

    def __init__(
        self,
        kernel,
        observable: Union[Observable, Mapping[str, float]],
        options: Optional[Union[Mapping[str, Any], OptimizerConfig]] = None,
        executor=None,
    ):
        self.kernel: KernelBinding = bind_kernel(kernel)
        self.observable = as_observable(observable)
        self.config = OptimizerConfig.from_mapping(options)
        self.optimizer = self.config.create_optimizer()
        self.executor = as_executor(executor) if executor is not None else get_default_executor()

        self.cache = EvaluationCache()
        self._evaluator: Optional[ExpectationEvaluator] = None
        self._state = RunState.CONFIGURED
        self._state_lock = threading.Lock()
        self._history: List[OptimizerResult] = []

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, *args) -> ExecutionResult:
        """
        Runs the optimization synchronously.

        Call as ``execute(initial_params)`` or ``execute(optimizer,
        initial_params)``. ``initial_params`` may be a scalar or a sequence.
        Calling again reuses every evaluation cached by earlier runs.
        """
        optimizer, params, cancel_event = self._begin(args)
        return self._run(optimizer, params, cancel_event)

    def execute_async(self, *args) -> ExecutionHandle:
        """Same as :meth:`execute` but runs on a worker thread and returns a handle."""
        optimizer, params, cancel_event = self._begin(args)
        worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"vqe-{self.kernel.name}")
        try:
            future = worker.submit(self._run, optimizer, params, cancel_event)
        except Exception:
            self._set_state(RunState.FAILED)
            raise
        finally:
            worker.shutdown(wait=False)
        return ExecutionHandle(future, cancel_event, self)

    def _begin(self, args: Tuple) -> Tuple[Optimizer, ParameterVector, threading.Event]:
        if len(args) == 1:
            optimizer, initial = self.optimizer, args[0]
        elif len(args) == 2:
            optimizer, initial = args
            if not isinstance(optimizer, Optimizer):
                raise ConfigurationError(
                    f"execute() expects an Optimizer as first argument, got {type(optimizer).__name__}."
                )
        else:
            raise TypeError("execute() takes the initial parameters, optionally preceded by an Optimizer.")

        kernel = self.kernel.resolve(initial)
        params = ParameterVector.from_value(initial)
        if optimizer.requires_gradient and self.config.gradient_strategy == "none":
            raise ConfigurationError(
                f"Optimizer '{optimizer.describe()}' requires a gradient; "
                "set 'gradient-strategy' to 'forward', 'central' or 'parameter-shift'."
            )

        with self._state_lock:
            if self._state is RunState.RUNNING:
                raise DriverStateError("A VQE run is already in progress on this instance.")
            self._state = RunState.RUNNING

        self.kernel = kernel
        if self._evaluator is None:
            self._evaluator = ExpectationEvaluator(
                kernel,
                self.observable,
                self.executor,
                cache=self.cache,
                gradient_strategy=self.config.gradient_strategy,
                step_size=self.config.step_size,
                shift=self.config.shift,
            )
        else:
            self._evaluator.kernel = kernel
        cancel_event = threading.Event()
        self._evaluator.cancel_event = cancel_event
        return optimizer, params, cancel_event

    def _run(self, optimizer: Optimizer, params: ParameterVector, cancel_event: threading.Event) -> ExecutionResult:
        evaluator = self._evaluator
        logger.info(
            f"Starting VQE for kernel '{self.kernel.name}' with {optimizer.describe()} "
            f"from {list(params)} ({self.observable.term_count()} terms on {self.observable.num_qubits} qubits)."
        )
        try:
            if cancel_event.is_set():
                raise RunCancelled("The run was cancelled before it started.")
            if not self.observable.measured_terms():
                # Nothing to measure: the energy is the constant offset everywhere.
                energy = evaluator.energy(params)
                result = OptimizerResult(energy, params, OptimizerStatus.CONVERGED, 1,
                                         "Observable has no measured terms.")
            else:
                gradient = evaluator.gradient if evaluator.has_gradient else None
                result = optimizer.minimize(evaluator.energy, params.to_numpy(), gradient)
        except RunCancelled:
            self._set_state(RunState.CANCELLED)
            logger.warning(f"VQE run for kernel '{self.kernel.name}' was cancelled.")
            raise
        except Exception as e:
            self._set_state(RunState.FAILED)
            logger.error(f"VQE run for kernel '{self.kernel.name}' failed: {e}")
            raise
        except BaseException as e:
            # KeyboardInterrupt and friends must not leave the driver RUNNING.
            self._set_state(RunState.FAILED)
            logger.error(f"VQE run for kernel '{self.kernel.name}' was interrupted: {e!r}")
            raise

        with self._state_lock:
            self._history.append(result)
            self._state = RunState.COMPLETED
        logger.info(
            f"VQE finished ({result.status.value}): <H>({list(result.params)}) = {result.energy:.8f} "
            f"after {result.n_evaluations} objective evaluations."
        )
        return ExecutionResult(result.energy, result.params)

    def _set_state(self, state: RunState):
        with self._state_lock:
            self._state = state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    @property
    def last_result(self) -> Optional[OptimizerResult]:
        with self._state_lock:
            return self._history[-1] if self._history else None

    @property
    def history(self) -> List[OptimizerResult]:
        with self._state_lock:
            return list(self._history)

    @property
    def executor_calls(self) -> int:
        return self._evaluator.executor_calls if self._evaluator is not None else 0

    def get_unique_parameters(self) -> List[ParameterVector]:
        """Every parameter vector evaluated so far, in first-seen order."""
        return self.cache.unique_parameter_vectors()

    def get_unique_energies(self) -> List[Tuple[float, ParameterVector]]:
        """(energy, params) for every evaluation so far, in first-seen order."""
        return self.cache.unique_energies_with_params()

    def get_records(self) -> List[EvaluationRecord]:
        return self.cache.all_records_in_order()
