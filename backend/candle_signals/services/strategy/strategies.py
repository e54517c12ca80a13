"""Signal strategies sharing one pattern: check data, compute indicators, detect.

Each strategy:
- resolves its periods (call parameters win over the strategy defaults)
- raises InsufficientData before computing when the series is too short
- runs exactly one detector and reports the indicator readings it used
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from candle_signals.infrastructure.utils.config import StrategyParams
from candle_signals.models.errors import InsufficientData, InvalidConfiguration
from candle_signals.models.market_models import CandleSeries, IndicatorSeries
from candle_signals.models.signal_models import Signal, StrategyOutcome
from candle_signals.services.market.indicators import (
    bollinger_bands,
    exponential_moving_average,
    relative_strength_index,
    simple_moving_average,
)
from candle_signals.services.signals.detectors import (
    detect_band_breakout,
    detect_crossover,
    detect_threshold_crossing,
    detect_volume_spike,
)


class Strategy(ABC):
    name: str = ""
    defaults: Mapping[str, int] = {}

    def resolve(self, params: StrategyParams, field: str) -> int:
        value = getattr(params, field, None)
        return int(value) if value is not None else int(self.defaults[field])

    @abstractmethod
    def minimum_candles(self, params: StrategyParams) -> int:
        """Candles needed before any indicator is computed."""

    def require(self, series: CandleSeries, params: StrategyParams) -> None:
        needed = self.minimum_candles(params)
        if len(series) < needed:
            raise InsufficientData(needed, len(series))

    @abstractmethod
    def evaluate(self, series: CandleSeries, params: StrategyParams) -> StrategyOutcome:
        """Run the indicators and the detector on the series."""


class _CrossoverStrategy(Strategy):
    """Fast MA crossing the slow MA on closes."""

    label = "ma"

    def _periods(self, params: StrategyParams) -> tuple[int, int]:
        fast = self.resolve(params, "fast_period")
        slow = self.resolve(params, "slow_period")
        if slow <= fast:
            raise InvalidConfiguration(
                f"slow_period ({slow}) must be greater than fast_period ({fast})"
            )
        return fast, slow

    def minimum_candles(self, params: StrategyParams) -> int:
        _, slow = self._periods(params)
        return slow

    @abstractmethod
    def moving_average(self, closes, period: int):
        """Moving average series over closes, tail aligned."""

    def evaluate(self, series: CandleSeries, params: StrategyParams) -> StrategyOutcome:
        fast_period, slow_period = self._periods(params)
        self.require(series, params)

        closes = series.closes()
        fast = IndicatorSeries.aligned(f"fast_{self.label}", self.moving_average(closes, fast_period), len(closes))
        slow = IndicatorSeries.aligned(f"slow_{self.label}", self.moving_average(closes, slow_period), len(closes))

        signal = detect_crossover(fast.values, slow.values)
        return StrategyOutcome(
            strategy=self.name,
            signal=signal,
            values={
                "close": closes[-1],
                f"fast_{self.label}": fast.values[-1],
                f"slow_{self.label}": slow.values[-1],
            },
            parameters={"fast_period": fast_period, "slow_period": slow_period},
        )


class SmaCrossoverStrategy(_CrossoverStrategy):
    name = "sma_crossover"
    label = "sma"
    defaults = {"fast_period": 10, "slow_period": 30}

    def moving_average(self, closes, period: int):
        return simple_moving_average(closes, period)


class EmaCrossoverStrategy(_CrossoverStrategy):
    name = "ema_crossover"
    label = "ema"
    defaults = {"fast_period": 12, "slow_period": 26}

    def moving_average(self, closes, period: int):
        return exponential_moving_average(closes, period)


class RsiThresholdStrategy(Strategy):
    """RSI crossing a configured level in the configured direction."""

    name = "rsi_threshold"
    defaults = {"period": 14}

    def minimum_candles(self, params: StrategyParams) -> int:
        return self.resolve(params, "period") + 1

    def evaluate(self, series: CandleSeries, params: StrategyParams) -> StrategyOutcome:
        if params.threshold is None:
            raise InvalidConfiguration("threshold is required for rsi_threshold")
        period = self.resolve(params, "period")
        self.require(series, params)

        closes = series.closes()
        rsi = IndicatorSeries.aligned("rsi", relative_strength_index(closes, period), len(closes))

        last_two = rsi.trailing(2)
        if last_two is None:
            signal = Signal.none(current=rsi.values[-1])
        else:
            signal = detect_threshold_crossing(last_two[0], last_two[1], params.threshold, params.direction)

        return StrategyOutcome(
            strategy=self.name,
            signal=signal,
            values={"close": closes[-1], "rsi": rsi.values[-1]},
            parameters={"period": period, "threshold": params.threshold, "direction": params.direction},
        )


class BollingerBreakoutStrategy(Strategy):
    """Last close outside the Bollinger bands of the trailing window."""

    name = "bollinger_breakout"
    defaults = {"period": 20}

    def minimum_candles(self, params: StrategyParams) -> int:
        return self.resolve(params, "period")

    def evaluate(self, series: CandleSeries, params: StrategyParams) -> StrategyOutcome:
        period = self.resolve(params, "period")
        self.require(series, params)

        closes = series.closes()
        bands = bollinger_bands(closes, period, params.multiplier)
        signal = detect_band_breakout(closes[-1], bands)

        return StrategyOutcome(
            strategy=self.name,
            signal=signal,
            values={
                "close": closes[-1],
                "upper_band": bands.upper,
                "middle_band": bands.middle,
                "lower_band": bands.lower,
                "stddev": bands.stddev,
            },
            parameters={"period": period, "multiplier": params.multiplier},
        )


class VolumeSpikeStrategy(Strategy):
    """Current volume against the average of the ``period`` candles before it."""

    name = "volume_spike"
    defaults = {"period": 10}

    def minimum_candles(self, params: StrategyParams) -> int:
        return self.resolve(params, "period") + 1

    def evaluate(self, series: CandleSeries, params: StrategyParams) -> StrategyOutcome:
        period = self.resolve(params, "period")
        self.require(series, params)

        volumes = series.volumes()
        current = volumes[-1]
        window = volumes[-(period + 1) : -1]
        signal = detect_volume_spike(current, window, params.multiplier)

        return StrategyOutcome(
            strategy=self.name,
            signal=signal,
            values={
                "close": series.closes()[-1],
                "volume": current,
                "average_volume": signal.evidence["average_volume"],
                "volume_ratio": signal.evidence["ratio"],
            },
            parameters={"period": period, "multiplier": params.multiplier},
        )


STRATEGIES: Dict[str, Strategy] = {
    s.name: s
    for s in (
        SmaCrossoverStrategy(),
        EmaCrossoverStrategy(),
        RsiThresholdStrategy(),
        BollingerBreakoutStrategy(),
        VolumeSpikeStrategy(),
    )
}


def get_strategy(name: str) -> Strategy:
    strategy: Optional[Strategy] = STRATEGIES.get(name)
    if strategy is None:
        raise InvalidConfiguration(f"unknown strategy: {name!r}")
    return strategy


def run_strategies(series: CandleSeries, params: StrategyParams) -> list[StrategyOutcome]:
    """Evaluate every configured strategy, in order, on the same series."""
    return [get_strategy(name).evaluate(series, params) for name in params.strategies]

