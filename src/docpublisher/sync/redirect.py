"""
Staging helpers: the "latest" redirect page and the versioned site copy.

The staging root mirrors the bucket layout::

    <staging_root>/<prefix>/<version>/...   versioned site
    <staging_root>/<prefix>/latest/index.html
"""

from __future__ import annotations

import html
import shutil
from pathlib import Path

from docpublisher.exceptions import ConfigurationError
from docpublisher.utils.logging import get_logger

logger = get_logger("docpublisher.sync.redirect")

LATEST_DIR_NAME = "latest"

REDIRECT_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <title>Redirecting to Latest Documentation</title>
    <meta http-equiv="refresh" content="0; url={url}">
    <link rel="canonical" href="{url}">
    <script>location.replace("{url}");</script>
</head>
<body>
    <p>Redirecting to <a href="{url}">latest documentation</a>&hellip;</p>
</body>
</html>
"""


def redirect_target(artifact_type: str, project_slug: str, version: str) -> str:
    """Site-relative URL of a versioned documentation root."""
    parts = [(part or "").strip().strip("/") for part in (artifact_type, project_slug, version)]
    if not all(parts):
        raise ConfigurationError(
            "artifact_type, project_slug and version are required to build the latest redirect",
            details={"artifact_type": artifact_type, "project_slug": project_slug, "version": version},
        )
    return "/" + "/".join(parts) + "/"


def write_latest_redirect(output_dir: str | Path, *, artifact_type: str, project_slug: str, version: str) -> Path:
    """
    Write ``index.html`` redirecting to ``/<artifact_type>/<project_slug>/<version>/``.

    Uses a meta refresh, a canonical link, and a ``location.replace`` script
    so browsers, crawlers and clients without meta refresh all follow it.

    Returns:
        Path of the written file
    """
    destination = Path(output_dir)
    destination.mkdir(parents=True, exist_ok=True)

    url = html.escape(redirect_target(artifact_type, project_slug, version), quote=True)
    index = destination / "index.html"
    index.write_text(REDIRECT_TEMPLATE.format(url=url), encoding="utf-8")
    logger.info(f"Created latest redirect: {index.resolve()}")
    return index


def stage_site(site_dir: str | Path, staging_root: str | Path, key_prefix_base: str, version: str) -> Path:
    """
    Copy a generated site into ``<staging_root>/<key_prefix_base>/<version>``.

    Any previous copy for the same version is replaced, so the staged tree
    holds exactly what will be mirrored.

    Returns:
        The versioned staging directory
    """
    source = Path(site_dir)
    if not source.is_dir():
        raise ConfigurationError(f"Site directory does not exist: {source.resolve()}")
    if not version.strip():
        raise ConfigurationError("A version is required to stage the site")

    target = Path(staging_root) / key_prefix_base.strip("/") / version.strip()
    if target.exists():
        shutil.rmtree(target)
    shutil.copytree(source, target)
    logger.info(f"Staged {source.resolve()} at {target.resolve()}")
    return target
