"""Windowed and recursive indicators (SMA, EMA, stddev, Bollinger, RSI, volume ratio).

All functions are pure and work on plain float sequences (closes or volumes).
A result that overflows to inf or NaN raises ArithmeticDegenerate.
Windowed outputs are aligned to the tail of the input: a period ``p`` over
``n`` values yields ``max(0, n - p + 1)`` results.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

from candle_signals.models.errors import ArithmeticDegenerate, InsufficientData
from candle_signals.models.market_models import BollingerBands


def _finite(value: float, what: str) -> float:
    if not math.isfinite(value):
        raise ArithmeticDegenerate(f"{what} is not finite")
    return value


def _ema(prev: Optional[float], value: float, period: int) -> float:
    alpha = 2.0 / (period + 1.0)
    return value if prev is None else (alpha * value + (1 - alpha) * prev)


def simple_moving_average(data: Sequence[float], period: int) -> List[float]:
    """Mean of every ``period``-wide window; empty when the input is shorter."""
    if period < 1:
        raise InsufficientData(1, period, "period")
    n = len(data)
    if n < period:
        return []
    return [_finite(float(sum(data[i : i + period])) / period, "moving average") for i in range(n - period + 1)]


def exponential_moving_average(data: Sequence[float], period: int) -> List[float]:
    """EMA seeded with the first value; one output per input."""
    if period < 1:
        raise InsufficientData(1, period, "period")
    out: List[float] = []
    prev: Optional[float] = None
    for value in data:
        prev = _finite(_ema(prev, float(value), period), "exponential moving average")
        out.append(prev)
    return out


def standard_deviation(data: Sequence[float], period: int) -> float:
    """Population standard deviation of the trailing ``period`` values."""
    if period < 1 or len(data) < period:
        raise InsufficientData(max(period, 1), len(data))
    window = [float(x) for x in data[-period:]]
    mean = simple_moving_average(window, period)[-1]
    deviations = [x - mean for x in window]
    variance = _finite(sum(d * d for d in deviations) / period, "variance")
    return math.sqrt(variance)


def bollinger_bands(data: Sequence[float], period: int, multiplier: float) -> BollingerBands:
    if period < 1 or len(data) < period:
        raise InsufficientData(max(period, 1), len(data))
    middle = simple_moving_average(data[-period:], period)[-1]
    sd = standard_deviation(data, period)
    width = _finite(float(multiplier) * sd, "band width")
    return BollingerBands(
        middle=middle,
        upper=_finite(middle + width, "upper band"),
        lower=_finite(middle - width, "lower band"),
        stddev=sd,
    )


def relative_strength_index(data: Sequence[float], period: int) -> List[float]:
    """RSI per window of ``period`` consecutive changes (simple averages).

    Output has ``len(data) - period`` values, the first aligned with
    ``data[period]``. A window without losses reads 100.
    """
    if period < 1:
        raise InsufficientData(1, period, "period")
    if len(data) < period + 1:
        return []

    changes = [_finite(float(data[i]) - float(data[i - 1]), "price change") for i in range(1, len(data))]
    out: List[float] = []
    for start in range(0, len(changes) - period + 1):
        window = changes[start : start + period]
        avg_gain = _finite(sum(c for c in window if c > 0) / period, "average gain")
        avg_loss = _finite(sum(-c for c in window if c < 0) / period, "average loss")
        if avg_loss == 0:
            rsi = 100.0
        else:
            rs = avg_gain / avg_loss
            rsi = 100.0 - (100.0 / (1.0 + rs))
        out.append(max(0.0, min(100.0, rsi)))
    return out


def average(data: Sequence[float]) -> float:
    if not data:
        raise InsufficientData(1, 0, "samples")
    return _finite(float(sum(data)) / len(data), "average")


def ratio(current: float, avg: float) -> float:
    """``current / avg`` for volume comparisons."""
    if avg is None or not math.isfinite(avg):
        raise InsufficientData(1, 0, "samples")
    if avg == 0:
        raise ArithmeticDegenerate("cannot compute ratio against a zero average")
    return _finite(float(current) / float(avg), "ratio")
