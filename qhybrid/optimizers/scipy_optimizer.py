# Copyright (c) 2025-2026, rocQuantum Developers.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""
Optimizer strategy backed by ``scipy.optimize.minimize``.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import numpy as np
from scipy.optimize import minimize

from ..errors import ConfigurationError
from .base import (
    EvaluationBudgetExhausted,
    EvaluationTracker,
    Gradient,
    Objective,
    Optimizer,
    OptimizerResult,
    OptimizerStatus,
    _positive_float,
)

logger = logging.getLogger(__name__)

# Option value -> scipy method name
_METHODS = {
    "cobyla": "COBYLA",
    "nelder-mead": "Nelder-Mead",
    "powell": "Powell",
    "l-bfgs": "L-BFGS-B",
    "l-bfgs-b": "L-BFGS-B",
    "bfgs": "BFGS",
    "cg": "CG",
    "slsqp": "SLSQP",
    "tnc": "TNC",
}
_GRADIENT_METHODS = {"L-BFGS-B", "BFGS", "CG", "SLSQP", "TNC"}

# scipy option that bounds the number of function evaluations, per method.
_BUDGET_OPTION = {
    "COBYLA": "maxiter",
    "Nelder-Mead": "maxfev",
    "Powell": "maxfev",
    "L-BFGS-B": "maxfun",
    "TNC": "maxfun",
}


class SciPyOptimizer(Optimizer):
    """
    A concrete implementation of the Optimizer strategy that wraps
    `scipy.optimize.minimize`.

    Recognized options:
        scipy-optimizer: cobyla (default), nelder-mead, powell, l-bfgs, bfgs,
            cg, slsqp or tnc.
        scipy-tol: Convergence tolerance passed as ``tol`` (default 1e-6).
        scipy-maxeval / max-evaluations: Objective evaluation budget.
        scipy-options: Mapping forwarded verbatim as scipy's ``options``.
    """

    name = "scipy"

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        super().__init__(options)
        method_key = str(self.options.get("scipy-optimizer", "cobyla")).lower()
        if method_key not in _METHODS:
            raise ConfigurationError(
                f"Unknown scipy optimizer '{method_key}'. Available: {sorted(_METHODS)}"
            )
        self.method = _METHODS[method_key]
        self.tol = _positive_float(self.options, "scipy-tol", 1e-6)
        extra = self.options.get("scipy-options", {})
        if not isinstance(extra, Mapping):
            raise ConfigurationError("Option 'scipy-options' must be a mapping.")
        self.scipy_options: Dict[str, Any] = dict(extra)

    @property
    def uses_gradient(self) -> bool:
        return self.method in _GRADIENT_METHODS

    def describe(self) -> str:
        return f"scipy:{self.method}"

    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        gradient: Optional[Gradient] = None,
    ) -> OptimizerResult:
        """
        Minimizes the objective function using scipy.optimize.minimize.
        """
        tracker = EvaluationTracker(objective, self.max_evaluations)

        jac = None
        if gradient is not None and self.uses_gradient:
            def jac(x):
                return np.asarray(gradient(np.asarray(x, dtype=float)), dtype=float)

        options = dict(self.scipy_options)
        budget_key = _BUDGET_OPTION.get(self.method)
        if budget_key is not None:
            options.setdefault(budget_key, self.max_evaluations)

        try:
            result = minimize(
                fun=tracker,
                x0=np.asarray(x0, dtype=float),
                jac=jac,
                method=self.method,
                tol=self.tol,
                options=options,
            )
        except EvaluationBudgetExhausted:
            logger.warning(
                f"{self.describe()} reached max-evaluations={self.max_evaluations} "
                f"without converging; best energy {tracker.best_energy:.8f}."
            )
            return tracker.result(
                OptimizerStatus.MAX_EVALUATIONS,
                f"Stopped after {tracker.n_evaluations} evaluations.",
            )

        if result.success:
            status = OptimizerStatus.CONVERGED
        elif tracker.exhausted:
            status = OptimizerStatus.MAX_EVALUATIONS
        else:
            status = OptimizerStatus.STALLED
        logger.info(f"{self.describe()} finished ({status.value}): {result.message}")
        return tracker.result(status, str(result.message))
