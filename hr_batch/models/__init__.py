"""hr_batch.models -- batch job ORM models."""

from hr_batch.models.batch import BatchItemModel, BatchJobModel

__all__ = ["BatchItemModel", "BatchJobModel"]
