"""Signal detectors: crossover, threshold crossing, volume spike, band breakout.

Detectors only look at the current and previous points, so a signal fires on
the one-step transition and never on a sustained state.
"""

from __future__ import annotations

import math
from typing import Literal, Optional, Sequence, Tuple

from candle_signals.models.errors import InsufficientData
from candle_signals.models.market_models import BollingerBands
from candle_signals.models.signal_models import Signal, SignalKind
from candle_signals.services.market.indicators import average, ratio


Direction = Literal["above", "below"]


def _last_two(series: Sequence[Optional[float]]) -> Optional[Tuple[float, float]]:
    if len(series) < 2:
        return None
    prev, cur = series[-2], series[-1]
    if prev is None or cur is None:
        return None
    prev, cur = float(prev), float(cur)
    if not (math.isfinite(prev) and math.isfinite(cur)):
        return None
    return prev, cur


def detect_crossover(fast: Sequence[Optional[float]], slow: Sequence[Optional[float]]) -> Signal:
    """Compare the two most recent points of ``fast`` against ``slow``.

    Both sequences must be aligned on their last element. Equality on the
    previous step counts as "not yet crossed".
    """
    f = _last_two(fast)
    s = _last_two(slow)
    if f is None or s is None:
        return Signal.none()

    pf, cf = f
    ps, cs = s
    evidence = {"fast_previous": pf, "fast_current": cf, "slow_previous": ps, "slow_current": cs}

    if pf <= ps and cf > cs:
        return Signal(SignalKind.BULLISH_CROSSOVER, evidence)
    if pf >= ps and cf < cs:
        return Signal(SignalKind.BEARISH_CROSSOVER, evidence)
    return Signal(SignalKind.NONE, evidence)


def detect_threshold_crossing(
    previous: float,
    current: float,
    threshold: float,
    direction: Direction = "above",
) -> Signal:
    evidence = {"previous": float(previous), "current": float(current), "threshold": float(threshold)}

    if direction == "above":
        if previous <= threshold and current > threshold:
            return Signal(SignalKind.THRESHOLD_ABOVE, evidence)
        return Signal(SignalKind.NONE, evidence)

    if direction == "below":
        if previous >= threshold and current < threshold:
            return Signal(SignalKind.THRESHOLD_BELOW, evidence)
        return Signal(SignalKind.NONE, evidence)

    raise ValueError(f"unknown threshold direction: {direction!r}")


def detect_volume_spike(current_volume: float, window: Sequence[float], multiplier: float) -> Signal:
    """Fire when the current volume is at least ``multiplier`` times the window average.

    ``window`` holds the historical volumes only, not the current one.
    """
    if not window:
        raise InsufficientData(1, 0, "historical candles")
    avg = average(window)
    r = ratio(current_volume, avg)
    evidence = {
        "current_volume": float(current_volume),
        "average_volume": avg,
        "ratio": r,
        "multiplier": float(multiplier),
    }
    if r >= multiplier:
        return Signal(SignalKind.VOLUME_SPIKE, evidence)
    return Signal(SignalKind.NONE, evidence)


def detect_band_breakout(price: float, bands: BollingerBands) -> Signal:
    """Strict breakout: touching a band exactly is not a breakout."""
    evidence = {
        "price": float(price),
        "upper": bands.upper,
        "middle": bands.middle,
        "lower": bands.lower,
    }
    if price > bands.upper:
        return Signal(SignalKind.BAND_UPPER_BREAKOUT, evidence)
    if price < bands.lower:
        return Signal(SignalKind.BAND_LOWER_BREAKOUT, evidence)
    return Signal(SignalKind.NONE, evidence)
