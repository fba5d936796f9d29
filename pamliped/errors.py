#!/usr/bin/env python3
# -*- coding: utf-8 -*-


"""Errors and warnings raised or recorded while parsing PAML reports.

Fatal conditions are exceptions: they abort the current result.
Recoverable conditions are warning categories: they are never raised, but
logged and recorded in the `warnings` of the result, through a ParseContext.
"""


from collections import namedtuple
import logging
logger = logging.getLogger(__name__)


class PAMLError(Exception):
    pass

class UnrecognizedFormatError(PAMLError, ValueError):
    """The header never matched any known program signature."""

class NotYetImplementedError(PAMLError, NotImplementedError):
    """A recognized part of the output that this parser does not handle."""

class UnsupportedDialectError(NotYetImplementedError):
    """Heuristic tree search modes (runmode 1 to 4)."""


class PAMLWarning(UserWarning):
    pass

class CorrelationMiss(PAMLWarning):
    """A branch id, tree or accuracy vector could not be matched."""

class MalformedLine(PAMLWarning):
    """A line did not match the grammar of its section."""


ParseWarning = namedtuple('ParseWarning', 'category message source lineno')


class ParseContext(object):
    """Diagnostic trail of one parse: collect the recoverable warnings.

    `cursor` (optional) is used to report the current line number.
    """
    def __init__(self, cursor=None, logger=logger):
        self.cursor = cursor
        self.logger = logger
        self.warnings = []

    def warn(self, category, msg, *args):
        message = msg % args if args else msg
        source, lineno = None, None
        if self.cursor is not None:
            source, lineno = self.cursor.name, self.cursor.lineno
        self.logger.warning('%s (line %s): %s', category.__name__, lineno,
                            message)
        self.warnings.append(ParseWarning(category, message, source, lineno))

    def take_warnings(self):
        """Return the warnings collected so far, and start a new list."""
        collected, self.warnings = tuple(self.warnings), []
        return collected

    def __len__(self):
        return len(self.warnings)
