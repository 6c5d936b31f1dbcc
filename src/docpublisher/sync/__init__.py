"""
Upload and publish subsystem.

Batch uploads with retry and sync-delete, plus the two-phase publish cycle.
"""

from docpublisher.sync.publisher import (
    LATEST_CACHE_CONTROL,
    VERSIONED_CACHE_CONTROL,
    PublishOrchestrator,
    PublishResult,
    s3_store_factory,
)
from docpublisher.sync.redirect import stage_site, write_latest_redirect
from docpublisher.sync.types import FileUploadTask, UploadJob, UploadOutcome, UploadSettings
from docpublisher.sync.uploader import BatchUploader

__all__ = [
    "UploadJob",
    "UploadSettings",
    "FileUploadTask",
    "UploadOutcome",
    "BatchUploader",
    "PublishOrchestrator",
    "PublishResult",
    "s3_store_factory",
    "write_latest_redirect",
    "stage_site",
    "VERSIONED_CACHE_CONTROL",
    "LATEST_CACHE_CONTROL",
]
