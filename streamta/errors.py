"""
Exception taxonomy for indicator construction and calculation.

Only constructors, batch ``calculate`` and streaming ``init`` raise; a
streaming ``next`` never does.
"""


class IndicatorError(Exception):
    """Base class for all indicator errors."""


class InvalidParameter(IndicatorError, ValueError):
    """
    A constructor argument violates its domain, or parallel input arrays
    passed to a batch call differ in length.
    """

    def __init__(self, reason: str):
        super().__init__(f"Invalid parameter: {reason}")
        self.reason = reason


class InsufficientData(IndicatorError):
    """The result is undefined (not merely unavailable) for the given input."""

    def __init__(self, required: int, provided: int):
        super().__init__(f"Insufficient data: required {required}, provided {provided}")
        self.required = required
        self.provided = provided


class NotInitialized(IndicatorError):
    """A stream was queried before it produced any value."""

    def __init__(self, name: str = "Indicator"):
        super().__init__(f"{name} not initialized")
