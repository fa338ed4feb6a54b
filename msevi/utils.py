# Copyright (c) 2023 msevi developers
#
# This file is part of msevi.
#
# msevi is free software: you can redistribute it and/or modify it
# under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# msevi is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with msevi.  If not, see <http://www.gnu.org/licenses/>.
"""Module defining logging and configuration-table utilities."""

import contextlib
import logging
from typing import Mapping

import yaml

_is_logging_on = False
TRACE_LEVEL = 5

logger = logging.getLogger(__name__)


def debug_on():
    """Turn debugging logging on.

    Sets up a StreamHandler to to `sys.stderr` at debug level for all
    loggers, such that all debug messages (and log messages with higher
    severity) are logged to the standard error stream.
    """
    logging_on(logging.DEBUG)


def debug_off():
    """Turn debugging logging off."""
    logging_off()


@contextlib.contextmanager
def debug():
    """Context manager to temporarily set debugging on.

    Example::

        >>> with msevi.utils.debug():
        ...     code_here()

    """
    debug_on()
    try:
        yield
    finally:
        debug_off()


def trace_on():
    """Turn trace logging on."""
    logging_on(TRACE_LEVEL)


def logging_on(level=logging.WARNING):
    """Turn logging on."""
    global _is_logging_on

    if not _is_logging_on:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("[%(levelname)s: %(asctime)s :"
                                               " %(name)s] %(message)s",
                                               '%Y-%m-%d %H:%M:%S'))
        console.setLevel(level)
        logging.getLogger('').addHandler(console)
        _is_logging_on = True

    log = logging.getLogger('')
    log.setLevel(level)
    for h in log.handlers:
        h.setLevel(level)


def logging_off():
    """Turn logging off."""
    global _is_logging_on
    logging.getLogger('').handlers = [logging.NullHandler()]
    _is_logging_on = False


def get_logger(name):
    """Return logger with a ``trace`` level method added if needed."""
    if not hasattr(logging.Logger, 'trace'):
        logging.addLevelName(TRACE_LEVEL, 'TRACE')

        def trace(self, message, *args, **kwargs):
            if self.isEnabledFor(TRACE_LEVEL):
                # Yes, logger takes its '*args' as 'args'.
                self._log(TRACE_LEVEL, message, args, **kwargs)

        logging.Logger.trace = trace

    log = logging.getLogger(name)
    return log


def recursive_dict_update(d, u):
    """Recursive dictionary update."""
    for k, v in u.items():
        if isinstance(v, Mapping):
            r = recursive_dict_update(d.get(k, {}), v)
            d[k] = r
        else:
            d[k] = u[k]
    return d


def load_yaml_tables(paths):
    """Load and merge the yaml tables in *paths*, later files taking precedence."""
    table = {}
    for path in paths:
        with open(path) as fd:
            content = yaml.safe_load(fd) or {}
        logger.debug("Loaded table from %s", path)
        recursive_dict_update(table, content)
    return table
