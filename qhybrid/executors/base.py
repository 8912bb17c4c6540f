# qhybrid/executors/base.py

"""
This module defines the interface through which the optimization loop talks
to whatever actually runs quantum programs (a simulator, a cloud QPU client,
or a test stub).
"""

import abc
from typing import Callable, List, Mapping, Sequence, Union

from ..kernel import KernelBinding
from ..operator import Basis
from ..parameters import ParameterVector

ExecutorResult = Union[float, Mapping[Union[str, int], int]]


class Executor(abc.ABC):
    """
    An abstract base class for kernel executors.

    Implementations bind ``params`` into ``kernel``, measure in ``basis`` and
    return either the expectation value of that Pauli product or the raw
    shot counts (bitstring or integer keys) measured after rotating the
    basis into Z.
    """

    #: When True, the evaluator submits all terms of one parameter vector
    #: through a single :meth:`execute_batch` call.
    batched = False

    @abc.abstractmethod
    def execute(self, kernel: KernelBinding, params: ParameterVector, basis: Basis) -> ExecutorResult:
        raise NotImplementedError

    def execute_batch(self, kernel: KernelBinding, params: ParameterVector,
                      bases: Sequence[Basis]) -> List[ExecutorResult]:
        """Evaluates several bases for the same parameters. Defaults to one call per basis."""
        return [self.execute(kernel, params, basis) for basis in bases]


class CallableExecutor(Executor):
    """Adapts a plain ``f(kernel, params, basis)`` function to the Executor interface."""

    def __init__(self, function: Callable[[KernelBinding, ParameterVector, Basis], ExecutorResult]):
        if not callable(function):
            raise TypeError("CallableExecutor requires a callable.")
        self.function = function

    def execute(self, kernel, params, basis):
        return self.function(kernel, params, basis)

    def __repr__(self):
        return f"CallableExecutor({getattr(self.function, '__name__', self.function)!r})"


def as_executor(executor) -> Executor:
    if isinstance(executor, Executor):
        return executor
    if callable(executor):
        return CallableExecutor(executor)
    raise TypeError(f"Expected an Executor or a callable, got {type(executor).__name__}.")
