"""
S3 connection for documentation uploads.

Provides a lazily built boto3 client and translates every SDK failure into
TransientStoreError / PermanentStoreError.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Optional

from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ParamValidationError,
    PartialCredentialsError,
)

from docpublisher.connections.storage import MAX_DELETE_BATCH, BaseStorageConnection, chunked
from docpublisher.core.retry.classify import ErrorKind, classify, parse_retry_after
from docpublisher.exceptions import ConfigurationError, PermanentStoreError, StoreError, TransientStoreError
from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.connections.s3")

# Per-attempt socket timeouts (seconds)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 30.0

# Errors that mean the request can never be made as configured
_PERMANENT_SDK_ERRORS = (NoCredentialsError, PartialCredentialsError, ParamValidationError)


class S3Connection(BaseStorageConnection):
    """
    S3 connection wrapper implementing the ObjectStore protocol.

    Config example:
        docs:
          bucket: my-docs-bucket
          region: us-east-1
          endpoint_url: ...        # Optional (MinIO, LocalStack)
          access_key_id: AKIA...   # Optional, uses env/profile/IAM if not set
          secret_access_key: ...   # Optional
          session_token: ...       # Optional (temporary credentials)
          connect_timeout: 10
          read_timeout: 30

    SDK-level retries are disabled: the uploader's backoff policy is the
    only retry layer, so attempts and delays stay observable.
    """

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        self._client = None
        self._client_lock = threading.Lock()
        if not str(self.config.get("bucket") or "").strip():
            raise ConfigurationError(
                f"S3 connection '{name}' requires 'bucket' in config. "
                f"Set docs.bucket in docpublisher.yaml or the DOCS_BUCKET environment variable."
            )

    @property
    def bucket(self) -> str:
        return str(self.config["bucket"]).strip()

    @property
    def region(self) -> Optional[str]:
        return self.config.get("region")

    @property
    def endpoint_url(self) -> Optional[str]:
        """Custom endpoint URL (for S3-compatible services like MinIO)."""
        return self.config.get("endpoint_url")

    def _get_client_kwargs(self) -> dict[str, Any]:
        """Build kwargs for boto3 client initialization."""
        kwargs: dict[str, Any] = {
            "config": BotoConfig(
                connect_timeout=float(self.config.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
                read_timeout=float(self.config.get("read_timeout", DEFAULT_READ_TIMEOUT)),
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
        }

        if self.region:
            kwargs["region_name"] = self.region

        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        # Explicit credentials from config (override env/profile/IAM)
        access_key = self.config.get("access_key_id")
        secret_key = self.config.get("secret_access_key")
        session_token = self.config.get("session_token")

        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
            if session_token:
                kwargs["aws_session_token"] = session_token

        return kwargs

    @property
    def client(self):
        """
        Get boto3 S3 client (lazy, built once even when first touched by several workers).

        boto3 clients are thread-safe, so one client serves all upload workers.
        """
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    import boto3

                    self._client = boto3.client("s3", **self._get_client_kwargs())
        return self._client

    def put_file(self, key: str, path: Path, *, content_type: str, cache_control: str) -> None:
        """
        Upload a local file as a single PUT.

        Raises:
            TransientStoreError: throttled, timed out, or transport failure
            PermanentStoreError: rejected by S3, or the local file is unreadable
        """
        try:
            body = open(path, "rb")
        except OSError as e:
            raise PermanentStoreError(f"Cannot read {path}: {e}") from e

        # botocore's timeout errors are OSError subclasses too, so only open() is
        # guarded by the OSError clause above
        with body:
            try:
                self.client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                    CacheControl=cache_control,
                )
            except (ClientError, BotoCoreError) as e:
                raise translate_error(e, f"PUT s3://{self.bucket}/{key}") from e

    def iter_keys(self, prefix: str) -> Iterator[str]:
        """
        Lazily list object keys under ``prefix``, one page at a time.

        Directory marker objects (keys ending in ``/``) are skipped.
        """
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    yield key
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, f"LIST s3://{self.bucket}/{prefix}") from e

    def delete_keys(self, keys: Iterable[str]) -> int:
        """
        Delete keys in batches of at most 1000.

        Per-key failures reported by S3 are logged and excluded from the count.

        Returns:
            Number of keys deleted
        """
        deleted = 0
        for batch in chunked(keys, MAX_DELETE_BATCH):
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                raise translate_error(e, f"DELETE {len(batch)} objects from s3://{self.bucket}") from e

            errors = response.get("Errors", []) or []
            for error in errors:
                logger.warning(
                    f"Could not delete s3://{self.bucket}/{error.get('Key')}: "
                    f"{error.get('Code')} {error.get('Message', '')}".rstrip()
                )
            deleted += len(batch) - len(errors)
        return deleted

    def close(self) -> None:
        """Close the underlying HTTP connection pool and drop the client."""
        with self._client_lock:
            if self._client is not None:
                close = getattr(self._client, "close", None)
                if callable(close):
                    close()
            self._client = None

    def __enter__(self) -> "S3Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def translate_error(error: Exception, operation: str) -> StoreError:
    """
    Turn a botocore exception into a classified StoreError.

    ClientError carries the HTTP status, the S3 error code, and any
    ``Retry-After`` header; BotoCoreError subclasses are transport-level
    failures, apart from credential and parameter problems.
    """
    if isinstance(error, ClientError):
        response = error.response or {}
        error_code = response.get("Error", {}).get("Code")
        metadata = response.get("ResponseMetadata", {})
        status_code = metadata.get("HTTPStatusCode")
        headers = metadata.get("HTTPHeaders", {}) or {}
        retry_after = parse_retry_after(headers.get("retry-after") or headers.get("Retry-After"))
        message = f"{operation} failed: {error_code or status_code}: {response.get('Error', {}).get('Message', error)}"
        kind = classify(status_code, error_code)
    elif isinstance(error, _PERMANENT_SDK_ERRORS):
        status_code, error_code, retry_after = None, type(error).__name__, None
        message = f"{operation} failed: {error}"
        kind = ErrorKind.PERMANENT
    else:
        status_code, error_code, retry_after = None, type(error).__name__, None
        message = f"{operation} failed: {error}"
        kind = classify(None, error_code)

    error_cls = TransientStoreError if kind is ErrorKind.TRANSIENT else PermanentStoreError
    return error_cls(message, status_code=status_code, error_code=error_code, retry_after=retry_after)
