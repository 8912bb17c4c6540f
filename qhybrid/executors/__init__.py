from .base import Executor, CallableExecutor, as_executor

__all__ = ['Executor', 'CallableExecutor', 'as_executor']
