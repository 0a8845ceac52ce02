"""CLI interface for thermosmart project."""

import click

from thermosmart import __version__
from thermosmart.cli.logger import logger_options
from thermosmart.cli.thermochemistry import thermo


@click.group()
@click.version_option(__version__, prog_name="thermosmart")
@logger_options
@click.pass_context
def entry_point(ctx, debug, stream, logfile, errfile):
    # Set up logging
    from thermosmart.utils.logger import create_logger

    ctx.ensure_object(dict)
    create_logger(
        debug=debug, stream=stream, logfile=logfile, errfile=errfile
    )


entry_point.add_command(thermo)


def main():  # pragma: no cover
    """
    The main function executes on commands:
    `python -m thermosmart` and `$ thermosmart `.
    """
    obj = {}
    entry_point(obj=obj)


if __name__ == "__main__":
    main()
