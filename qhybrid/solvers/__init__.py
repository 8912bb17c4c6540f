from .vqe import VQE, ExecutionHandle, ExecutionResult, RunState

__all__ = ['VQE', 'ExecutionHandle', 'ExecutionResult', 'RunState']
