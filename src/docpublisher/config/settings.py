"""
Typed publish settings derived from a loaded Config.

Config example (``docpublisher.yaml``)::

    docs:
      bucket: ${DOCS_BUCKET}
      artifact_type: site
      project_slug: my-project
      prefix: site/my-project          # default: <artifact_type>/<project_slug>
      site_base_url: https://docs.example.com
      region: us-east-1
    upload:
      max_concurrency: 5
      max_retries: 5
      base_delay: 2.0
      max_delay: 60.0
      jitter: 1.0
    logging:
      level: INFO
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from docpublisher.config.loader import Config
from docpublisher.core.retry.policy import BackoffPolicy
from docpublisher.exceptions import ConfigurationError
from docpublisher.sync.types import UploadSettings

BUCKET_ENV_VAR = "DOCS_BUCKET"
DEFAULT_ARTIFACT_TYPE = "site"

# Keys of the docs section handed through to the S3 connection
CONNECTION_KEYS = (
    "region",
    "endpoint_url",
    "access_key_id",
    "secret_access_key",
    "session_token",
    "connect_timeout",
    "read_timeout",
)


@dataclass(frozen=True)
class PublishSettings:
    """Everything a publish run needs besides the staging directory and version."""

    bucket: Optional[str]
    key_prefix_base: str
    artifact_type: str = DEFAULT_ARTIFACT_TYPE
    project_slug: Optional[str] = None
    site_base_url: Optional[str] = None
    connection: dict[str, Any] = field(default_factory=dict)
    upload: UploadSettings = field(default_factory=UploadSettings)

    @property
    def view_url(self) -> Optional[str]:
        """Public URL of the latest docs, when the base URL and slug are known."""
        if not self.site_base_url or not self.project_slug:
            return None
        return f"{self.site_base_url.rstrip('/')}/{self.artifact_type}/{self.project_slug}/latest/"


def _number(section: Mapping[str, Any], key: str, default: Any, cast: type) -> Any:
    value = section.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Configuration '{key}' must be a {cast.__name__}, got {value!r}", details={"key": key}
        ) from e


def load_upload_settings(config: Config) -> UploadSettings:
    """Concurrency and backoff tuning from the ``upload`` section."""
    section = config.section("upload")
    defaults = BackoffPolicy()
    backoff = BackoffPolicy(
        max_retries=_number(section, "max_retries", defaults.max_retries, int),
        base_delay=_number(section, "base_delay", defaults.base_delay, float),
        max_delay=_number(section, "max_delay", defaults.max_delay, float),
        jitter_max=_number(section, "jitter", defaults.jitter_max, float),
    )
    return UploadSettings(
        max_concurrency=_number(section, "max_concurrency", UploadSettings.max_concurrency, int),
        backoff=backoff,
    )


def load_publish_settings(
    config: Config,
    *,
    bucket: Optional[str] = None,
    key_prefix_base: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> PublishSettings:
    """
    Build PublishSettings.

    Bucket resolution order: ``bucket`` argument, ``docs.bucket``, then the
    ``DOCS_BUCKET`` environment variable. A missing bucket is left as None;
    the publisher reports it before touching the network.
    """
    environ = os.environ if environ is None else environ
    docs = config.section("docs")

    resolved_bucket = _first_non_blank(bucket, docs.get("bucket"), environ.get(BUCKET_ENV_VAR))

    artifact_type = str(docs.get("artifact_type") or DEFAULT_ARTIFACT_TYPE).strip("/")
    project_slug = docs.get("project_slug")
    prefix = _first_non_blank(key_prefix_base, docs.get("prefix"))
    if prefix is None:
        if not project_slug:
            raise ConfigurationError(
                "Missing docs prefix: set docs.prefix or docs.project_slug, or pass --prefix",
                details={"setting": "docs.prefix"},
            )
        prefix = f"{artifact_type}/{project_slug}"

    return PublishSettings(
        bucket=resolved_bucket,
        key_prefix_base=prefix.strip("/"),
        artifact_type=artifact_type,
        project_slug=project_slug,
        site_base_url=docs.get("site_base_url"),
        connection={key: docs[key] for key in CONNECTION_KEYS if docs.get(key) is not None},
        upload=load_upload_settings(config),
    )


def _first_non_blank(*values: Any) -> Optional[str]:
    for value in values:
        if value is not None and str(value).strip() and not str(value).startswith("${"):
            return str(value).strip()
    return None
