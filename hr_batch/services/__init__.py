"""hr_batch.services -- batch execution."""

from hr_batch.services.executor import BatchExecutor

__all__ = ["BatchExecutor"]
