from importlib.metadata import PackageNotFoundError
from importlib.metadata import version

import typer

from graphsbom.commands import parse
from graphsbom.core.logging import console
from graphsbom.core.logging import setup_logging

app = typer.Typer(
    help='GraphSBOM: turn CycloneDX SBOMs into knowledge-graph assertions.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.command(name='parse')(parse.main)


def _version_callback(value: bool):
    if not value:
        return
    try:
        console.print(version('graphsbom'))
    except PackageNotFoundError:
        console.print('0.0.0-dev')
    raise typer.Exit()


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
    show_version: bool = typer.Option(
        False, '--version', callback=_version_callback, is_eager=True,
        help='Show the version and exit',
    ),
):
    """
    GraphSBOM CLI - CycloneDX to graph assertions.
    """
    setup_logging(level='DEBUG' if debug else None)


if __name__ == '__main__':
    app()
