"""
docpublisher stage / redirect - Prepare the staging tree for publish.
"""

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from docpublisher.config import load_config
from docpublisher.config.settings import DEFAULT_ARTIFACT_TYPE
from docpublisher.exceptions import ConfigurationError, DocPublisherError
from docpublisher.site import SiteInfo, generate_site
from docpublisher.sync import stage_site, write_latest_redirect
from docpublisher.sync.redirect import LATEST_DIR_NAME
from docpublisher.utils.logging import setup_logging_from_config

console = Console(stderr=True)


def _fail(e: DocPublisherError) -> NoReturn:
    console.print(f"[red]Error:[/red] {e.message}", markup=True, highlight=False)
    raise typer.Exit(1) from None


def stage(
    site_dir: Path = typer.Argument(..., help="Generated site directory"),
    version: str = typer.Option(..., "--version", help="Documentation version"),
    prefix: str | None = typer.Option(None, "--prefix", "-p", help="Key prefix base (default: <artifact_type>/<slug>)"),
    staging_dir: Path = typer.Option(Path("build/docsUpload"), "--staging-dir", "-s", help="Staging root"),
    slug: str | None = typer.Option(None, "--slug", help="Project slug (default: docs.project_slug)"),
    artifact_type: str | None = typer.Option(None, "--artifact-type", help="Artifact type (default: docs.artifact_type or 'site')"),
    build_dir: Path | None = typer.Option(
        None, "--build-dir", help="Generate SITE_DIR from this build directory's reports before staging"
    ),
    project_name: str | None = typer.Option(None, "--project-name", help="Project name shown on the generated site"),
    build_tool_version: str | None = typer.Option(None, "--build-tool-version", help="Build tool version shown on the generated site"),
    project_dir: Path | None = typer.Option(None, "--project-dir", "-d", help="Project directory (default: current directory)"),
) -> None:
    """
    Stage SITE_DIR as <prefix>/<version> and write <prefix>/latest/index.html.
    """
    project_dir = project_dir or Path.cwd()
    try:
        config = load_config(project_dir)
        setup_logging_from_config(config.data, project_dir=project_dir)
        artifact = artifact_type or config.get("docs.artifact_type", DEFAULT_ARTIFACT_TYPE)
        project_slug = slug or config.get("docs.project_slug")
        base = prefix or config.get("docs.prefix") or (f"{artifact}/{project_slug}" if project_slug else None)
        if not base or not project_slug:
            raise ConfigurationError("A project slug is required: pass --slug or set docs.project_slug")

        if build_dir is not None:
            info = SiteInfo(
                project_name=project_name or config.get("docs.project_name") or project_slug,
                project_version=version,
                build_tool_version=build_tool_version,
            )
            generate_site(build_dir, site_dir, info)

        target = stage_site(site_dir, staging_dir, base, version)
        index = write_latest_redirect(
            Path(staging_dir) / base.strip("/") / LATEST_DIR_NAME,
            artifact_type=artifact,
            project_slug=project_slug,
            version=version,
        )
    except DocPublisherError as e:
        _fail(e)

    typer.echo(f"Staged {target}")
    typer.echo(f"Redirect {index}")


def redirect(
    output_dir: Path = typer.Option(..., "--output-dir", "-o", help="Directory to write index.html into"),
    version: str = typer.Option(..., "--version", help="Version the redirect points to"),
    slug: str = typer.Option(..., "--slug", help="Project slug"),
    artifact_type: str = typer.Option(DEFAULT_ARTIFACT_TYPE, "--artifact-type", help="Artifact type"),
) -> None:
    """
    Write index.html redirecting to /<artifact-type>/<slug>/<version>/.
    """
    try:
        index = write_latest_redirect(output_dir, artifact_type=artifact_type, project_slug=slug, version=version)
    except DocPublisherError as e:
        _fail(e)
    typer.echo(f"Redirect {index}")
