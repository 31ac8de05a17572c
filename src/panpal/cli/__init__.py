"""CLI commands for PanPal.

Provides command-line interface using Typer:
- panpal serve: Run the API server
- panpal cache invalidate: Delete cached keys by pattern
- panpal cache ttl: Show effective bucket TTLs

Usage:
    panpal --help
    panpal serve --port 3000
    panpal cache invalidate "recipe:42*" --bucket recipes
"""

import typer

from panpal.cli.cache_cmd import app as cache_app
from panpal.cli.serve import app as serve_app

app = typer.Typer(
    name="panpal",
    help="PanPal: recipe sharing backend",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """PanPal: recipe sharing backend."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
