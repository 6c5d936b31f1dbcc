"""
Main CLI entry point.
"""

import typer

from docpublisher import __version__
from docpublisher.cli import publish, site, stage


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"docpublisher version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="docpublisher",
    help="docpublisher - Publish generated documentation sites to S3",
    add_completion=False,
)

app.add_typer(publish.app, name="publish")
app.command("site", help="Generate the documentation site from build reports")(site.site)
app.command("stage", help="Copy a generated site into the staging layout")(stage.stage)
app.command("redirect", help="Write the latest redirect page")(stage.redirect)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    docpublisher - Publish generated documentation sites to S3.

    Run 'docpublisher <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
