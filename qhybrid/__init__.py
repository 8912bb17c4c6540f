# qhybrid Framework Main Entry Point
# This file makes the `qhybrid` directory a Python package and exposes the public API.

"""
qhybrid

A hybrid quantum-classical optimization engine: a VQE driver with pluggable
classical optimizers, memoized expectation-value evaluation and gradient
estimation on top of any kernel executor.
"""

# Public API Imports
from .errors import (
    QHybridError,
    ConfigurationError,
    ExecutorFailure,
    CacheIntegrityError,
    RunCancelled,
    DriverStateError,
    ResultConsumedError,
)
from .operator import Observable, ObservableTerm
from .parameters import ParameterVector
from .kernel import KernelBinding, bind_kernel
from .cache import EvaluationCache, EvaluationRecord
from .executors.base import Executor, CallableExecutor
from .evaluator import ExpectationEvaluator
from .optimizers.base import Optimizer, OptimizerResult, OptimizerStatus
from .core import (
    available_optimizers,
    create_optimizer,
    register_optimizer,
    set_default_executor,
    get_default_executor,
)
from .config import OptimizerConfig
from .solvers.vqe import VQE, ExecutionHandle, ExecutionResult, RunState

__version__ = "0.1.0"
