"""Typer application for the citation-radar job runner."""

from __future__ import annotations

import typer

from citation_radar import __version__
from citation_radar.cli.run import register as register_run

app = typer.Typer(
    name="citation-radar",
    help="Extract citation URLs from stored answer-engine responses and categorize them.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"citation-radar {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Citation extraction and categorization pipeline."""


register_run(app)


if __name__ == "__main__":
    app()
