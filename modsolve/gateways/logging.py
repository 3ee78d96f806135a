# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Configure logging for modsolve."""

import logging
import sys
from functools import cache
from logging import DEBUG, INFO, WARN, Filter, Formatter, StreamHandler, getLogger

from ..common.constants import TRACE
from ..common.io import attach_stderr_handler

log = getLogger(__name__)
_VERBOSITY_LEVELS = {
    0: WARN,  # standard output
    1: WARN,  # -v, search summary
    2: INFO,  # -vv, info logging
    3: DEBUG,  # -vvv, debug logging
    4: TRACE,  # -vvvv, every search event
}

# Labels log messages with log level TRACE (5) as "TRACE"
logging.addLevelName(TRACE, "TRACE")


class SearchEventFilter(Filter):
    """Interpolate record arguments eagerly.

    Search events are logged with lazily rendered objects as arguments; rendering them here
    means a record that outlives the search still shows the message it was logged with.
    """

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True
        if record.args:
            record.msg = record.msg % record.args
            record.args = None
        return True


class StdStreamHandler(StreamHandler):
    """Log StreamHandler that always writes to the current sys stream."""

    terminator = "\n"

    def __init__(self, sys_stream):
        """
        Args:
            sys_stream: stream name, either "stdout" or "stderr" (attribute of module sys)
        """
        super().__init__(getattr(sys, sys_stream))
        self.sys_stream = sys_stream
        del self.stream

    def __getattr__(self, attr):
        # always get current sys.stdout/sys.stderr, unless self.stream has been set explicitly
        if attr == "stream":
            return getattr(sys, self.sys_stream)
        return super().__getattribute__(attr)

    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stream
            stream.write(msg)
            stream.write(getattr(record, "terminator", self.terminator))
            self.flush()
        except Exception:
            self.handleError(record)


# Don't use initialize_logging/set_log_level from library code that embeds modsolve:
# there the caller owns handlers, formatters and propagation settings.


@cache
def initialize_logging():
    # 'modsolve' gets level WARN and does not propagate to root.
    getLogger("modsolve").setLevel(WARN)
    set_modsolve_log_level()
    initialize_std_loggers()


def initialize_std_loggers():
    # 'modsolve.stdout' writes plain messages, e.g. the search summary, straight to stdout
    formatter = Formatter("%(message)s")

    logger = getLogger("modsolve.stdout")
    logger.handlers = []
    logger.setLevel(INFO)
    handler = StdStreamHandler("stdout")
    handler.setLevel(INFO)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False


def set_modsolve_log_level(level=WARN):
    attach_stderr_handler(level=level, logger_name="modsolve", filters=[SearchEventFilter()])


def set_verbosity(verbosity: int):
    level = _VERBOSITY_LEVELS.get(verbosity, TRACE if verbosity > 4 else WARN)
    set_log_level(level)


def set_log_level(log_level: int):
    set_modsolve_log_level(log_level)
    log.debug("log_level set to %d", log_level)


def trace_enabled(logger):
    return logger.isEnabledFor(TRACE)


__all__ = (
    "DEBUG",
    "INFO",
    "TRACE",
    "initialize_logging",
    "set_log_level",
    "set_verbosity",
    "trace_enabled",
)
