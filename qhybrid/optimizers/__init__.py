from .base import Optimizer, OptimizerResult, OptimizerStatus
from .scipy_optimizer import SciPyOptimizer

__all__ = ['Optimizer', 'OptimizerResult', 'OptimizerStatus', 'SciPyOptimizer']
