"""
docpublisher - publish generated documentation sites to S3.

Rate-limit aware batch uploads with exponential backoff, jitter and
Retry-After support, plus sync-delete mirroring and a two-phase
versioned/latest publish cycle.
"""

__version__ = "0.1.0"

from docpublisher.config import Config, PublishSettings, load_config, load_publish_settings
from docpublisher.connections import ObjectStore, S3Connection
from docpublisher.core.retry import BackoffPolicy, ErrorKind, RetryState, classify

# Exceptions
from docpublisher.exceptions import (
    ConfigurationError,
    DocPublisherError,
    PermanentStoreError,
    PublishError,
    StoreError,
    TransientStoreError,
    UploadError,
)
from docpublisher.site import SiteInfo, generate_site
from docpublisher.sync import (
    BatchUploader,
    FileUploadTask,
    PublishOrchestrator,
    PublishResult,
    UploadJob,
    UploadOutcome,
    UploadSettings,
    s3_store_factory,
    stage_site,
    write_latest_redirect,
)

# Logging utilities
from docpublisher.utils.logging import get_logger, setup_logging

__all__ = [
    "__version__",
    # Uploading
    "BatchUploader",
    "UploadJob",
    "UploadSettings",
    "FileUploadTask",
    "UploadOutcome",
    # Publishing
    "PublishOrchestrator",
    "PublishResult",
    "s3_store_factory",
    "stage_site",
    "write_latest_redirect",
    # Site generation
    "SiteInfo",
    "generate_site",
    # Storage
    "ObjectStore",
    "S3Connection",
    # Retry
    "BackoffPolicy",
    "RetryState",
    "ErrorKind",
    "classify",
    # Config
    "Config",
    "PublishSettings",
    "load_config",
    "load_publish_settings",
    # Exceptions
    "DocPublisherError",
    "ConfigurationError",
    "StoreError",
    "TransientStoreError",
    "PermanentStoreError",
    "UploadError",
    "PublishError",
    # Logging
    "get_logger",
    "setup_logging",
]
