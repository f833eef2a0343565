"""
Error Types for the Enrollment Modeling Pipeline
================================================

Fatal errors halt the pipeline and propagate to the caller. Each one also
subclasses the matching builtin (FileNotFoundError or ValueError).

MissingOutcomeDataError is informational: it is emitted with
``warnings.warn`` when rows without an outcome are dropped, never raised.
"""


class ABEnrollmentError(Exception):
    """Base class for fatal pipeline errors."""


class MissingFileError(ABEnrollmentError, FileNotFoundError):
    """An input data file does not exist."""


class ParseError(ABEnrollmentError, ValueError):
    """An input data file is empty, malformed, or missing required columns."""


class UnknownDayAbbreviationError(ABEnrollmentError, ValueError):
    """A date string does not start with a recognised day-of-week abbreviation."""


class MissingOutcomeDataError(UserWarning):
    """Rows with a missing outcome were dropped before modeling."""
