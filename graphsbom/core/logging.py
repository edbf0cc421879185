import logging
import sys
from typing import Any

import structlog
from rich.console import Console
from rich.text import Text

from graphsbom.core.config import get_config

# Central console for rich output
console = Console()

LEVEL_STYLES = {
    'debug': 'dim',
    'info': 'green',
    'warning': 'yellow',
    'error': 'bold red',
    'critical': 'bold magenta',
}

# Keys bound by the parser for every event of one document
DOCUMENT_KEYS = ('source', 'format')


class RichConsoleRenderer:
    """
    Render structlog events as a single rich line on stderr.

    The line reads "time logger level event key=value ...". Document keys
    bound by the parser are printed last, dimmed, so the interesting fields
    stay at the front. Values are appended as plain Text, never as markup.
    An optional '_style' key overrides the style of the whole line.
    """

    def __init__(self, console: Console | None = None):
        self._console = console or Console(stderr=True)

    def __call__(self, logger, name, event_dict):
        custom_style = event_dict.pop('_style', None)
        event = str(event_dict.pop('event', ''))
        level = event_dict.pop('level', 'info')
        logger_name = event_dict.pop('logger', None)
        timestamp = event_dict.pop('timestamp', None)
        exception = event_dict.pop('exception', None)
        stack_info = event_dict.pop('stack_info', None)
        document = {k: event_dict.pop(k) for k in DOCUMENT_KEYS if k in event_dict}

        line = Text()
        if timestamp:
            line.append(f"{timestamp} ", style='dim')
        if logger_name:
            line.append(f"{logger_name} ", style='bold')
        line.append(f"{level:<8} ", style=LEVEL_STYLES.get(level, 'white'))
        line.append(event)
        for key, value in event_dict.items():
            line.append(f" {key}", style='cyan')
            line.append('=')
            line.append(repr(value), style='green')
        for key, value in document.items():
            line.append(f" {key}={value}", style='dim')
        if exception:
            line.append(f"\n{exception}", style='red')
        if stack_info:
            line.append(f"\n{stack_info}", style='dim')
        if custom_style:
            line.stylize(custom_style)

        self._console.print(line)

        # Nothing left for the stdlib logger to print
        raise structlog.DropEvent


def drop_style_processor(logger, method_name, event_dict):
    """Remove the internal '_style' key so it never leaks into JSON logs."""
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structured logging for the application.
    Falls back to the logging section of the config for unset arguments.
    """
    config = get_config().logging
    level = (level or config.level).upper()
    if json_output is None:
        json_output = config.json

    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
