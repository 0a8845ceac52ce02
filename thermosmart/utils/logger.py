"""
Logging utilities for thermosmart.

Configures the root logger used by the command line and by batch runs.
Warnings raised while preparing molecules (imaginary modes converted,
conflicting presets, dropped concentration terms) are emitted once per
run thanks to the deduplicating filter installed here.
"""

import logging
import os
import re
import sys


class LogOnceFilter(logging.Filter):
    """
    Logging filter that drops messages already seen during this run.

    Only records at or above `min_level` are deduplicated; debug and info
    chatter from scans passes through untouched.
    """

    def __init__(self, min_level=logging.WARNING):
        super().__init__()
        self.min_level = min_level
        self.logged_messages = set()

    def filter(self, record):
        """
        Return False for a record whose message was logged before.

        Args:
            record (logging.LogRecord): The log record to evaluate.

        Returns:
            bool: True if the record should be emitted.
        """
        if record.levelno < self.min_level:
            return True
        message = self.remove_timestamp(self.format_record(record))
        key = (record.levelno, message)
        if key in self.logged_messages:
            return False
        self.logged_messages.add(key)
        return True

    def reset(self):
        self.logged_messages.clear()

    @staticmethod
    def format_record(record):
        if record.args:
            return record.msg % record.args
        return str(record.msg)

    @staticmethod
    def remove_timestamp(message):
        return re.sub(
            r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},\d{3} - ", "", message
        )


def create_logger(
    debug=True,
    folder=".",
    logfile=None,
    errfile=None,
    stream=True,
    disable=None,
):
    """
    Create and configure the root logger.

    Errors always go to stderr. If `stream=True`, all messages are also
    sent to stdout.

    Args:
        debug (bool, optional): Enable debug level logging. Defaults to True.
        folder (str, optional): Directory for log files. Defaults to ".".
        logfile (str, optional): Name of the info/debug log file.
        errfile (str, optional): Name of the warning/error log file.
        stream (bool, optional): Enable console output to stdout.
        disable (list[str], optional): Module names to silence.

    Returns:
        logging.Logger: Configured root logger instance.
    """
    if disable is None:
        disable = []

    for module in disable:
        logging.getLogger(module).disabled = True

    logger = logging.getLogger()

    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)
    logger.handlers = []
    logger.filters = []
    formatter = logging.Formatter(
        "{asctime} - {levelname:6s} - [{name}] {message}",
        style="{",
    )

    err_stream_handler = logging.StreamHandler(stream=sys.stderr)
    err_stream_handler.setLevel(logging.ERROR)
    err_stream_handler.setFormatter(formatter)
    err_stream_handler.addFilter(LogOnceFilter())
    logger.addHandler(err_stream_handler)

    if stream:
        stream_handler = logging.StreamHandler(stream=sys.stdout)
        stream_handler.setFormatter(formatter)
        stream_handler.addFilter(LogOnceFilter())
        logger.addHandler(stream_handler)

    if logfile:
        infofile_handler = logging.FileHandler(
            filename=os.path.join(folder, logfile)
        )
        infofile_handler.setLevel(level)
        infofile_handler.setFormatter(formatter)
        infofile_handler.addFilter(LogOnceFilter())
        logger.addHandler(infofile_handler)

    if errfile:
        errfile_handler = logging.FileHandler(
            filename=os.path.join(folder, errfile)
        )
        errfile_handler.setLevel(logging.WARNING)
        errfile_handler.setFormatter(formatter)
        errfile_handler.addFilter(LogOnceFilter())
        logger.addHandler(errfile_handler)

    return logger
