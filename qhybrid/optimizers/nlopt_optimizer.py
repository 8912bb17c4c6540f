# qhybrid/optimizers/nlopt_optimizer.py

"""
Optimizer strategy backed by the NLopt library.

``nlopt`` is an optional dependency (``pip install qhybrid[nlopt]``); it is
imported when the strategy is constructed so that a missing install fails at
configuration time instead of in the middle of a run.
"""

import logging
from typing import Any, Mapping, Optional

import numpy as np

from ..errors import ConfigurationError, QHybridError
from .base import (
    EvaluationTracker,
    Gradient,
    Objective,
    Optimizer,
    OptimizerResult,
    OptimizerStatus,
    _positive_float,
)

logger = logging.getLogger(__name__)

_ALGORITHMS = {
    "cobyla": "LN_COBYLA",
    "nelder-mead": "LN_NELDERMEAD",
    "sbplx": "LN_SBPLX",
    "bobyqa": "LN_BOBYQA",
    "l-bfgs": "LD_LBFGS",
    "mma": "LD_MMA",
    "slsqp": "LD_SLSQP",
}


class NLoptOptimizer(Optimizer):
    """
    Wraps ``nlopt.opt``.

    Recognized options:
        nlopt-optimizer: cobyla (default), nelder-mead, sbplx, bobyqa,
            l-bfgs, mma or slsqp. The last three need a gradient.
        nlopt-maxeval / max-evaluations: Objective evaluation budget.
        nlopt-ftol: Relative function tolerance (default 1e-6).
    """

    name = "nlopt"

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        super().__init__(options)
        try:
            import nlopt
        except ImportError as e:
            raise ConfigurationError(
                "The 'nlopt' optimizer requires the nlopt package. Install it with 'pip install nlopt'."
            ) from e
        self._nlopt = nlopt

        algo_key = str(self.options.get("nlopt-optimizer", "cobyla")).lower()
        if algo_key not in _ALGORITHMS:
            raise ConfigurationError(
                f"Unknown nlopt optimizer '{algo_key}'. Available: {sorted(_ALGORITHMS)}"
            )
        self.algorithm_name = _ALGORITHMS[algo_key]
        self.algorithm = getattr(nlopt, self.algorithm_name)
        self.ftol = _positive_float(self.options, "nlopt-ftol", 1e-6)

    @property
    def requires_gradient(self) -> bool:
        return self.algorithm_name.startswith("LD_")

    def describe(self) -> str:
        return f"nlopt:{self.algorithm_name}"

    def minimize(
        self,
        objective: Objective,
        x0: np.ndarray,
        gradient: Optional[Gradient] = None,
    ) -> OptimizerResult:
        self._check_gradient(gradient)
        nlopt = self._nlopt
        x0 = np.asarray(x0, dtype=float)
        tracker = EvaluationTracker(objective, self.max_evaluations)

        def nlopt_objective(x, grad):
            value = tracker(x)
            if grad.size > 0:
                grad[:] = np.asarray(gradient(np.array(x, dtype=float)), dtype=float)
            return value

        opt = nlopt.opt(self.algorithm, x0.size)
        opt.set_min_objective(nlopt_objective)
        opt.set_maxeval(self.max_evaluations)
        opt.set_ftol_rel(self.ftol)

        try:
            opt.optimize(x0)
        except nlopt.RoundoffLimited:
            logger.warning(f"{self.describe()} stopped on roundoff; returning best point seen.")
            return tracker.result(OptimizerStatus.STALLED, "Roundoff limited.")
        except RuntimeError as e:
            # ExecutorFailure and CacheIntegrityError are RuntimeErrors too.
            if isinstance(e, QHybridError) or tracker.best_params is None:
                raise
            logger.warning(f"{self.describe()} stopped with '{e}'; returning best point seen.")
            return tracker.result(OptimizerStatus.STALLED, str(e))

        code = opt.last_optimize_result()
        if code == nlopt.MAXEVAL_REACHED:
            logger.warning(
                f"{self.describe()} reached max-evaluations={self.max_evaluations} "
                f"without converging; best energy {tracker.best_energy:.8f}."
            )
            status = OptimizerStatus.MAX_EVALUATIONS
        elif code > 0:
            status = OptimizerStatus.CONVERGED
        else:
            status = OptimizerStatus.STALLED
        logger.info(f"{self.describe()} finished ({status.value}), nlopt result code {code}.")
        return tracker.result(status, f"nlopt result code {code}")
