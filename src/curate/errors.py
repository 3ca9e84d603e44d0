"""Error taxonomy for curate commands.

Calendar and argument errors are fatal for the current command.  Rule
parse problems are not exceptions at all; see
:class:`curate.rules.models.RuleParseWarning`.
"""

from __future__ import annotations


class CurateError(Exception):
    """Base error for all curate failures reported to the user."""


class InvalidDate(CurateError, ValueError):
    """A date or month string could not be parsed."""


class InvalidWeek(CurateError, ValueError):
    """An ISO week string (``YYYY-Www``) could not be parsed."""


class InvalidRange(CurateError, ValueError):
    """A date range is inconsistent (end before start, or conflicting modes)."""


class MissingRequiredArgument(CurateError):
    """A command was invoked without an argument it requires."""


class IOFailure(CurateError):
    """The record log, rule table or an output file could not be read or written."""
