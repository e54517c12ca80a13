"""Error taxonomy for indicator and signal evaluation.

Every error here is a value-level outcome of one invocation: the pipeline turns
it into an ``error`` result. Anything else raised is a bug and propagates.
"""

from __future__ import annotations


class SignalError(Exception):
    """Base class for errors reported back to the host as ``status=error``."""


class InsufficientData(SignalError):
    """Fewer candles (or changes) than a window requires."""

    def __init__(self, required: int, available: int, what: str = "candles") -> None:
        self.required = int(required)
        self.available = int(available)
        self.what = what
        super().__init__(f"at least {self.required} {what} required, got {self.available}")


class InvalidConfiguration(SignalError):
    """A required parameter is missing or a parameter is out of range."""


class InvalidSeries(InvalidConfiguration):
    """Candle rows supplied by the host are malformed or out of order."""


class ArithmeticDegenerate(SignalError):
    """A ratio divisor is zero or an indicator overflows to inf or NaN.

    The RSI zero-loss case has its own policy and is not an error.
    """
