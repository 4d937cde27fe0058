"""
hr_batch.tasks -- Task protocol, registry, and HR task implementations.
"""

from hr_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
)

__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "TaskRegistry",
]
