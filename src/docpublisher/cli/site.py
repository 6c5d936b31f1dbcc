"""
docpublisher site - Generate the documentation site from build reports.
"""

from pathlib import Path

import typer
from rich.console import Console

from docpublisher.config import load_config
from docpublisher.exceptions import DocPublisherError
from docpublisher.site import SiteInfo, generate_site
from docpublisher.utils.logging import setup_logging_from_config

console = Console(stderr=True)


def site(
    version: str = typer.Option(..., "--version", help="Project version shown on the site"),
    name: str | None = typer.Option(None, "--name", help="Project name (default: docs.project_name or docs.project_slug)"),
    build_dir: Path = typer.Option(Path("build"), "--build-dir", "-b", help="Build directory holding the reports"),
    output_dir: Path = typer.Option(Path("build/site"), "--output-dir", "-o", help="Site directory"),
    module: str | None = typer.Option(None, "--module", "-m", help="Render into <output-dir>/<module> instead"),
    build_tool_version: str | None = typer.Option(None, "--build-tool-version", help="Build tool version shown on the site"),
    project_dir: Path | None = typer.Option(None, "--project-dir", "-d", help="Project directory (default: current directory)"),
) -> None:
    """
    Render index.html with quality metrics and copy the build's HTML reports.

    Without --module, an existing set of module sites under the output
    directory gets an aggregated index instead.
    """
    project_dir = project_dir or Path.cwd()
    try:
        config = load_config(project_dir)
        setup_logging_from_config(config.data, project_dir=project_dir)
        info = SiteInfo(
            project_name=name or config.get("docs.project_name") or config.get("docs.project_slug") or project_dir.name,
            project_version=version,
            build_tool_version=build_tool_version,
        )
        index = generate_site(build_dir, output_dir, info, module_name=module)
    except DocPublisherError as e:
        console.print(f"[red]Error:[/red] {e.message}", markup=True, highlight=False)
        raise typer.Exit(1) from None
    typer.echo(f"Site {index}")
