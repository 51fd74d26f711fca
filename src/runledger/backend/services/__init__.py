"""Backend services for the runledger API."""

from runledger.backend.services.duplicates import DuplicateDetectionService
from runledger.backend.services.upload import UploadOutcome, UploadService

__all__ = ["DuplicateDetectionService", "UploadOutcome", "UploadService"]
