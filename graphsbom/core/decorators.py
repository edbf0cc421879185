import functools
from collections.abc import Callable
from typing import Any

import structlog
import typer

from graphsbom.core.errors import BomDecodeError
from graphsbom.core.errors import BomParseError
from graphsbom.core.errors import IdentifierError
from graphsbom.core.logging import console
logger = structlog.get_logger('cli')

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def describe_parse_error(error: BomParseError) -> str:
    """One-line summary of a parse failure for the console."""
    if isinstance(error, BomDecodeError):
        return f"{error.format_tag} payload does not decode ({type(error.cause).__name__}): {error.cause}"
    if isinstance(error, IdentifierError):
        return f"bad package identifier {error.purl!r}: {error.reason}"
    return str(error)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn exceptions escaping a CLI command into a message and an exit code."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except BomParseError as e:
            console.print(f"[bold red]Parse Error:[/] {describe_parse_error(e)}")
            logger.debug('Parse error', error_type=type(e).__name__, exc_info=True)
            raise typer.Exit(EXIT_FAILURE)
        except (OSError, ValueError) as e:
            console.print(f"[bold red]Input Error:[/] {e}")
            logger.debug('Input error', exc_info=True)
            raise typer.Exit(EXIT_FAILURE)
        except KeyboardInterrupt:
            console.print('\n[yellow]Parsing interrupted.[/]')
            raise typer.Exit(EXIT_INTERRUPTED)
        except Exception as e:
            console.print(f"[bold red]Unexpected Error:[/] {e}")
            logger.exception('Unexpected error')
            raise typer.Exit(EXIT_FAILURE)
    return wrapper
