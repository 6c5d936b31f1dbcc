"""
docpublisher publish - Upload a staged documentation version to S3.
"""

from pathlib import Path

import typer
from rich.console import Console

from docpublisher.config import load_config, load_publish_settings
from docpublisher.exceptions import DocPublisherError
from docpublisher.sync import PublishOrchestrator, s3_store_factory
from docpublisher.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("docpublisher.cli.publish")

app = typer.Typer(name="publish", help="Publish staged documentation to S3", invoke_without_command=True)

console = Console(stderr=True)


@app.callback()
def publish(
    version: str = typer.Option(..., "--version", help="Documentation version to publish"),
    staging_dir: Path = typer.Option(
        Path("build/docsUpload"), "--staging-dir", "-s", help="Staging root holding <prefix>/<version> and <prefix>/latest"
    ),
    bucket: str | None = typer.Option(None, "--bucket", "-b", help="S3 bucket (default: docs.bucket or DOCS_BUCKET)"),
    prefix: str | None = typer.Option(None, "--prefix", "-p", help="Key prefix base, e.g. site/my-project"),
    env: str | None = typer.Option(None, help="Environment (selects docpublisher.<env>.yaml)"),
    project_dir: Path | None = typer.Option(None, "--project-dir", "-d", help="Project directory (default: current directory)"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
) -> None:
    """
    Upload the versioned tree (mirrored, immutable cache) and then the latest redirect.
    """
    project_dir = project_dir or Path.cwd()
    try:
        config = load_config(project_dir, env=env)
        setup_logging_from_config(config.data, project_dir=project_dir, verbose=verbose)
        settings = load_publish_settings(config, bucket=bucket, key_prefix_base=prefix)

        orchestrator = PublishOrchestrator(
            s3_store_factory(settings.connection),
            upload_settings=settings.upload,
            view_url=settings.view_url,
        )
        result = orchestrator.publish(staging_dir, settings.bucket, settings.key_prefix_base, version)
    except DocPublisherError as e:
        logger.debug("Publish failed", exc_info=True)
        console.print(f"[red]Error:[/red] {e.message}", markup=True, highlight=False)
        console.print("Re-run publish once the cause is fixed; the versioned upload repairs partial state.")
        raise typer.Exit(1) from None

    typer.echo(
        f"Published {version}: {result.versioned.succeeded} files "
        f"({result.versioned.deleted} stale removed), latest redirect {result.latest.succeeded} files"
    )
    if result.view_url:
        typer.echo(f"View at: {result.view_url}")
