from __future__ import annotations

import inspect
from numbers import Real
from typing import Callable, Optional, Tuple

import numpy as np

from .errors import ConfigurationError
from .parameters import ParameterVector

SCALAR = "scalar"
VECTOR = "vector"
SCALARS = "scalars"
KERNEL_SHAPES = (SCALAR, VECTOR, SCALARS)

_VECTOR_HINTS = ("list", "sequence", "ndarray", "tuple", "iterable", "vector")
_SCALAR_HINTS = ("float", "int", "real", "double")


def _shape_from_annotation(annotation) -> Optional[str]:
    if annotation is inspect.Parameter.empty:
        return None
    if annotation in (float, int):
        return SCALAR
    if annotation in (list, tuple, np.ndarray):
        return VECTOR
    text = annotation if isinstance(annotation, str) else repr(annotation)
    text = text.lower()
    if any(hint in text for hint in _VECTOR_HINTS):
        return VECTOR
    if any(hint in text for hint in _SCALAR_HINTS):
        return SCALAR
    return None


class KernelBinding:
    """Pairs a parameterized quantum program with the shape of its parameters.

    The wrapped function takes a qubit register followed by its variational
    parameters, either as one scalar (``f(q, x)``), one vector (``f(q, xs)``)
    or several positional scalars (``f(q, a, b)``). Internally every call
    site deals in ParameterVector; the binding converts back to the shape the
    function expects.

    Args:
        function (Callable): The kernel function.
        shape (str, optional): One of "scalar", "vector", "scalars". Inferred
            from annotations when omitted, or from the first initial
            parameters passed to :meth:`resolve`.
        arity (int, optional): Number of parameters. Fixed to 1 for scalar
            kernels and to the positional count for "scalars" kernels.
    """

    def __init__(self, function: Callable, shape: Optional[str] = None, arity: Optional[int] = None,
                 name: Optional[str] = None):
        if not callable(function):
            raise ConfigurationError("A kernel must be callable.")
        self.function = function
        self.name = name or getattr(function, "__name__", type(function).__name__)

        if shape is None:
            shape, inferred_arity = self._infer_shape(function)
            if arity is None:
                arity = inferred_arity
        if shape is not None and shape not in KERNEL_SHAPES:
            raise ConfigurationError(f"Unknown kernel shape '{shape}'. Expected one of {list(KERNEL_SHAPES)}.")
        if shape == SCALAR:
            if arity not in (None, 1):
                raise ConfigurationError(f"A scalar kernel has arity 1, got {arity}.")
            arity = 1
        if arity is not None and (not isinstance(arity, int) or arity <= 0):
            raise ConfigurationError(f"Kernel arity must be a positive integer, got {arity!r}.")
        self.shape = shape
        self.arity = arity

    @classmethod
    def scalar(cls, function: Callable, name: Optional[str] = None) -> "KernelBinding":
        return cls(function, shape=SCALAR, arity=1, name=name)

    @classmethod
    def vector(cls, function: Callable, arity: Optional[int] = None, name: Optional[str] = None) -> "KernelBinding":
        return cls(function, shape=VECTOR, arity=arity, name=name)

    @staticmethod
    def _infer_shape(function: Callable) -> Tuple[Optional[str], Optional[int]]:
        try:
            signature = inspect.signature(function)
        except (TypeError, ValueError):
            return None, None
        params = [
            p for p in signature.parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        # First positional argument is the qubit register.
        variational = params[1:]
        if len(variational) > 1:
            return SCALARS, len(variational)
        if len(variational) == 1:
            return _shape_from_annotation(variational[0].annotation), None
        return None, None

    @property
    def is_resolved(self) -> bool:
        return self.shape is not None

    def resolve(self, initial) -> "KernelBinding":
        """Returns a binding whose shape and arity are fixed, using ``initial`` to fill gaps."""
        params = ParameterVector.from_value(initial)
        shape = self.shape
        if shape is None:
            is_scalar = isinstance(initial, (Real, np.floating, np.integer)) and not isinstance(initial, bool)
            shape = SCALAR if is_scalar else VECTOR
        arity = self.arity if self.arity is not None else len(params)
        if len(params) != arity:
            raise ConfigurationError(
                f"Kernel '{self.name}' expects {arity} parameter(s), got {len(params)}."
            )
        if shape == self.shape and arity == self.arity:
            return self
        return KernelBinding(self.function, shape=shape, arity=arity, name=self.name)

    def arguments(self, params: ParameterVector) -> tuple:
        """Converts a ParameterVector to the positional arguments the kernel expects."""
        if self.arity is not None and len(params) != self.arity:
            raise ConfigurationError(
                f"Kernel '{self.name}' expects {self.arity} parameter(s), got {len(params)}."
            )
        if self.shape == SCALAR:
            return (params[0],)
        if self.shape == SCALARS:
            return tuple(params)
        return (list(params),)

    def __call__(self, register, params: ParameterVector):
        return self.function(register, *self.arguments(params))

    def __repr__(self):
        return f"<KernelBinding name='{self.name}' shape={self.shape} arity={self.arity}>"


def bind_kernel(kernel) -> KernelBinding:
    if isinstance(kernel, KernelBinding):
        return kernel
    return KernelBinding(kernel)
