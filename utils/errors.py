"""
Exception types raised by the planner.

Bad or sparse data never raises inside the engine: it degrades to low
confidence and fallback values. Only decoding failures at the file boundary
and integration mistakes (wrong ordering, missing body weight) raise.
"""


class PacePlannerError(Exception):
    """Base class for all planner errors."""


class MalformedInputError(PacePlannerError, ValueError):
    """A GPX/FIT source could not be decoded into any usable points."""


class SegmentOrderError(PacePlannerError, ValueError):
    """Segment cumulative distances decrease along the declared order."""


class PreconditionViolation(PacePlannerError, ValueError):
    """The caller broke a contract of the model it invoked."""
