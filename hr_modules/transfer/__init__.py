"""Project Transfer Module (``hr_modules.transfer``): PROJ_TRANSFER chain requests."""

from hr_modules.transfer.orm import ProjectTransferModel, TransferStatus
from hr_modules.transfer.service import ProjectTransferFlow, ProjectTransferService

__all__ = [
    "ProjectTransferFlow",
    "ProjectTransferModel",
    "ProjectTransferService",
    "TransferStatus",
]
