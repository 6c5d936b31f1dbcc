"""
Publish orchestrator: versioned documentation first, then the "latest" redirect.

The versioned tree is immutable and long-cached, and mirrored exactly
(sync-delete on) so re-publishing a version repairs any partial earlier
attempt. The latest tree is short-cached and uploaded without reconciliation.
It is only attempted once the versioned tree is fully in place.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from docpublisher.connections.s3 import S3Connection
from docpublisher.connections.storage import ObjectStore
from docpublisher.exceptions import ConfigurationError, DocPublisherError, PublishError
from docpublisher.sync.redirect import LATEST_DIR_NAME
from docpublisher.sync.types import UploadJob, UploadOutcome, UploadSettings
from docpublisher.sync.uploader import BatchUploader
from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.sync.publisher")

VERSIONED_CACHE_CONTROL = "public,max-age=31536000,immutable"
LATEST_CACHE_CONTROL = "public,max-age=60,must-revalidate"

PHASE_VERSIONED = "versioned"
PHASE_LATEST = "latest"

StoreFactory = Callable[[str], ObjectStore]


@dataclass(frozen=True)
class PublishResult:
    """Outcomes of both phases of a successful publish."""

    versioned: UploadOutcome
    latest: UploadOutcome
    view_url: Optional[str] = None


def require_bucket(bucket: Optional[str]) -> str:
    """Return the stripped bucket name or raise a ConfigurationError naming the setting."""
    if bucket is None or not str(bucket).strip():
        raise ConfigurationError(
            "Missing docs bucket configuration.\n"
            "  Set via: --bucket bucket-name\n"
            "  Or config: docs.bucket in docpublisher.yaml\n"
            "  Or environment variable: DOCS_BUCKET",
            details={"setting": "docs.bucket"},
        )
    return str(bucket).strip()


def s3_store_factory(connection_config: Optional[dict[str, Any]] = None) -> StoreFactory:
    """
    Build a store factory opening a fresh S3Connection per upload job.

    ``connection_config`` carries region, endpoint, credentials and timeouts;
    the bucket comes from the publish call.
    """
    base = dict(connection_config or {})

    def factory(bucket: str) -> ObjectStore:
        return S3Connection("docs", {**base, "bucket": bucket})

    return factory


class PublishOrchestrator:
    """
    Sequences the versioned upload and the latest-redirect upload.

    Fail-fast: if the versioned phase fails the latest phase is not
    attempted, so "latest" never points at a half-published version.
    """

    def __init__(
        self,
        store_factory: StoreFactory,
        *,
        uploader_factory: Callable[[ObjectStore], BatchUploader] = BatchUploader,
        upload_settings: Optional[UploadSettings] = None,
        view_url: Optional[str] = None,
    ):
        """
        Args:
            store_factory: Opens an ObjectStore for a bucket; closed after each phase
            uploader_factory: Builds the uploader for an open store
            upload_settings: Concurrency and retry tuning for both phases
            view_url: Public URL logged after a successful publish
        """
        self.store_factory = store_factory
        self.uploader_factory = uploader_factory
        self.upload_settings = upload_settings or UploadSettings()
        self.view_url = view_url

    def build_jobs(self, site_staging_root: str | Path, bucket: str, key_prefix_base: str, version: str) -> list[tuple[str, UploadJob]]:
        """The two jobs of a publish cycle, in execution order."""
        root = Path(site_staging_root)
        prefix = key_prefix_base.strip("/")
        version = version.strip()
        if not version:
            raise ConfigurationError("A version is required to publish documentation")

        settings = self.upload_settings
        versioned = UploadJob(
            bucket=bucket,
            key_prefix=f"{prefix}/{version}" if prefix else version,
            source_directory=root / prefix / version,
            cache_control=VERSIONED_CACHE_CONTROL,
            sync_delete=True,
            max_concurrency=settings.max_concurrency,
            backoff=settings.backoff,
        )
        latest = UploadJob(
            bucket=bucket,
            key_prefix=f"{prefix}/{LATEST_DIR_NAME}" if prefix else LATEST_DIR_NAME,
            source_directory=root / prefix / LATEST_DIR_NAME,
            cache_control=LATEST_CACHE_CONTROL,
            sync_delete=False,
            max_concurrency=settings.max_concurrency,
            backoff=settings.backoff,
        )
        return [(PHASE_VERSIONED, versioned), (PHASE_LATEST, latest)]

    def publish(self, site_staging_root: str | Path, bucket: Optional[str], key_prefix_base: str, version: str) -> PublishResult:
        """
        Publish one documentation version.

        Raises:
            ConfigurationError: bucket or version missing (nothing uploaded)
            PublishError: a phase failed; ``phase`` says which
        """
        bucket = require_bucket(bucket)
        jobs = self.build_jobs(site_staging_root, bucket, key_prefix_base, version)

        logger.info(f"Uploading documentation to s3://{bucket}/{key_prefix_base.strip('/')}/")
        outcomes: dict[str, UploadOutcome] = {}
        for phase, job in jobs:
            logger.info(f"Uploading {phase} documentation...")
            outcomes[phase] = self._run_phase(phase, job)

        logger.info("Documentation published successfully!")
        if self.view_url:
            logger.info(f"View at: {self.view_url}")
        return PublishResult(
            versioned=outcomes[PHASE_VERSIONED],
            latest=outcomes[PHASE_LATEST],
            view_url=self.view_url,
        )

    def _run_phase(self, phase: str, job: UploadJob) -> UploadOutcome:
        """Run one job on its own store, closed on every exit path."""
        try:
            store = self.store_factory(job.bucket)
        except DocPublisherError as e:
            raise PublishError(phase, e.message, cause=e) from e

        try:
            with closing(store):
                return self.uploader_factory(store).upload(job)
        except DocPublisherError as e:
            logger.error(f"Publishing {phase} documentation failed: {e.message}")
            raise PublishError(phase, e.message, cause=e) from e
