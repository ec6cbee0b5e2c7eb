"""Core orchestration and event interfaces."""

from batch_fdr.core.events import CompositeListener, LoggingListener, OptimizerListener
from batch_fdr.core.optimizer import BatchFdrOptimizer, OptimizationResult

__all__ = [
    "BatchFdrOptimizer",
    "OptimizationResult",
    "CompositeListener",
    "LoggingListener",
    "OptimizerListener",
]
