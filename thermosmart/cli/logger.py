import functools
import logging

import click

logger = logging.getLogger(__name__)


def logger_options(f):
    """Logging configuration options."""

    @click.option(
        "-d",
        "--debug/--no-debug",
        default=False,
        help="Turn on debug logging.",
    )
    @click.option(
        "--stream/--no-stream",
        default=True,
        help="Turn on logging to stdout.",
    )
    @click.option(
        "--logfile",
        default=None,
        type=str,
        help="Also write info/debug messages to this file.",
    )
    @click.option(
        "--errfile",
        default=None,
        type=str,
        help="Also write warnings and errors to this file.",
    )
    @functools.wraps(f)
    def wrapper_common_options(*args, **kwargs):
        return f(*args, **kwargs)

    return wrapper_common_options
