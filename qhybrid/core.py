# qhybrid/core.py

"""
This module serves as the central registry for optimizer strategies and the
process-wide default kernel executor.
"""

import importlib
import threading
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from .errors import ConfigurationError
from .executors.base import Executor, as_executor
from .optimizers.base import Optimizer

_AVAILABLE_OPTIMIZERS: Dict[str, Union[str, Type[Optimizer]]] = {
    "scipy": "qhybrid.optimizers.scipy_optimizer.SciPyOptimizer",
    "nlopt": "qhybrid.optimizers.nlopt_optimizer.NLoptOptimizer",
}

_REGISTRY_LOCK = threading.Lock()

_DEFAULT_EXECUTOR: Optional[Executor] = None


def available_optimizers() -> List[str]:
    """Names accepted by :func:`create_optimizer`."""
    with _REGISTRY_LOCK:
        return list(_AVAILABLE_OPTIMIZERS.keys())


def is_registered(name: str) -> bool:
    with _REGISTRY_LOCK:
        return name in _AVAILABLE_OPTIMIZERS


def register_optimizer(name: str, target: Union[str, Type[Optimizer]]) -> None:
    """
    Registers an optimizer class (or its dotted import path) under ``name``.

    Registration is meant to happen once at startup; re-registering a name
    is an error.
    """
    if not isinstance(name, str) or not name:
        raise ConfigurationError("Optimizer name must be a non-empty string.")
    if not isinstance(target, str) and not (isinstance(target, type) and issubclass(target, Optimizer)):
        raise ConfigurationError("Optimizer target must be an Optimizer subclass or its import path.")
    with _REGISTRY_LOCK:
        if name in _AVAILABLE_OPTIMIZERS:
            raise ConfigurationError(f"Optimizer '{name}' is already registered.")
        _AVAILABLE_OPTIMIZERS[name] = target


def _resolve(name: str) -> Type[Optimizer]:
    with _REGISTRY_LOCK:
        if name not in _AVAILABLE_OPTIMIZERS:
            raise ConfigurationError(
                f"Optimizer '{name}' not recognized. Available: {list(_AVAILABLE_OPTIMIZERS.keys())}"
            )
        target = _AVAILABLE_OPTIMIZERS[name]

    if not isinstance(target, str):
        return target
    try:
        module_path, class_name = target.rsplit(".", 1)
        module = importlib.import_module(module_path)
        optimizer_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Could not import optimizer class '{target}': {e}") from e
    return optimizer_class


def create_optimizer(name: str, options: Optional[Mapping[str, Any]] = None) -> Optimizer:
    """Instantiates the optimizer registered under ``name`` with ``options``."""
    optimizer_class = _resolve(name)
    return optimizer_class(options)


def set_default_executor(executor) -> None:
    """Selects the executor used by drivers constructed without one."""
    global _DEFAULT_EXECUTOR
    _DEFAULT_EXECUTOR = None if executor is None else as_executor(executor)


def get_default_executor() -> Executor:
    """Retrieves the process-wide default executor."""
    if _DEFAULT_EXECUTOR is None:
        raise ConfigurationError("No kernel executor configured. Pass one to VQE or call set_default_executor().")
    return _DEFAULT_EXECUTOR
