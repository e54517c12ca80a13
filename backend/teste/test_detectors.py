"""
Unit tests for the signal detectors.

Run with:
    python -m pytest backend/teste/test_detectors.py -v
"""

import itertools

import pytest

from candle_signals.models.errors import ArithmeticDegenerate, InsufficientData
from candle_signals.models.market_models import BollingerBands
from candle_signals.models.signal_models import SignalKind
from candle_signals.services.signals.detectors import (
    detect_band_breakout,
    detect_crossover,
    detect_threshold_crossing,
    detect_volume_spike,
)


class TestCrossover:
    def test_bullish(self):
        signal = detect_crossover([1.0, 3.0], [2.0, 2.0])
        assert signal.kind is SignalKind.BULLISH_CROSSOVER
        assert signal.evidence == {
            "fast_previous": 1.0,
            "fast_current": 3.0,
            "slow_previous": 2.0,
            "slow_current": 2.0,
        }

    def test_bearish(self):
        assert detect_crossover([3.0, 1.0], [2.0, 2.0]).kind is SignalKind.BEARISH_CROSSOVER

    def test_equal_previous_counts_as_not_yet_crossed(self):
        assert detect_crossover([2.0, 3.0], [2.0, 2.0]).kind is SignalKind.BULLISH_CROSSOVER
        assert detect_crossover([2.0, 1.0], [2.0, 2.0]).kind is SignalKind.BEARISH_CROSSOVER

    def test_touching_is_not_a_cross(self):
        assert detect_crossover([1.0, 2.0], [2.0, 2.0]).kind is SignalKind.NONE
        assert detect_crossover([2.0, 2.0], [2.0, 2.0]).kind is SignalKind.NONE

    def test_sustained_state_does_not_fire(self):
        assert detect_crossover([3.0, 4.0], [2.0, 2.0]).kind is SignalKind.NONE

    def test_aligns_on_most_recent_values(self):
        fast = [9.0, 9.0, 9.0, 1.0, 3.0]
        slow = [2.0, 2.0]
        assert detect_crossover(fast, slow).kind is SignalKind.BULLISH_CROSSOVER

    def test_fewer_than_two_points(self):
        assert detect_crossover([1.0], [0.0, 2.0]).kind is SignalKind.NONE
        assert detect_crossover([1.0, 3.0], [2.0]).kind is SignalKind.NONE
        assert detect_crossover([], []).kind is SignalKind.NONE

    def test_undefined_points(self):
        assert detect_crossover([None, 3.0], [2.0, 2.0]).kind is SignalKind.NONE
        assert detect_crossover([1.0, float("nan")], [2.0, 2.0]).kind is SignalKind.NONE

    def test_never_both_directions(self):
        values = [0.0, 1.0, 2.0]
        for pf, cf, ps, cs in itertools.product(values, repeat=4):
            kind = detect_crossover([pf, cf], [ps, cs]).kind
            bullish = pf <= ps and cf > cs
            bearish = pf >= ps and cf < cs
            assert not (bullish and bearish)
            if bullish:
                assert kind is SignalKind.BULLISH_CROSSOVER
            elif bearish:
                assert kind is SignalKind.BEARISH_CROSSOVER
            else:
                assert kind is SignalKind.NONE


class TestThresholdCrossing:
    def test_above_fires_on_transition(self):
        signal = detect_threshold_crossing(70.0, 71.0, 70.0, "above")
        assert signal.kind is SignalKind.THRESHOLD_ABOVE
        assert signal.evidence == {"previous": 70.0, "current": 71.0, "threshold": 70.0}

    def test_above_does_not_refire(self):
        assert detect_threshold_crossing(71.0, 72.0, 70.0, "above").kind is SignalKind.NONE

    def test_above_equal_current_does_not_fire(self):
        assert detect_threshold_crossing(69.0, 70.0, 70.0, "above").kind is SignalKind.NONE

    def test_below(self):
        assert detect_threshold_crossing(30.0, 29.0, 30.0, "below").kind is SignalKind.THRESHOLD_BELOW
        assert detect_threshold_crossing(29.0, 28.0, 30.0, "below").kind is SignalKind.NONE

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            detect_threshold_crossing(1.0, 2.0, 1.5, "sideways")


class TestVolumeSpike:
    def test_spike(self):
        """Current 300 vs trailing 10-period average 100 with multiplier 2.0."""
        signal = detect_volume_spike(300.0, [100.0] * 10, 2.0)
        assert signal.kind is SignalKind.VOLUME_SPIKE
        assert signal.evidence["ratio"] == 3.0
        assert signal.evidence["average_volume"] == 100.0

    def test_ratio_equal_to_multiplier_fires(self):
        assert detect_volume_spike(200.0, [100.0] * 10, 2.0).kind is SignalKind.VOLUME_SPIKE

    def test_below_multiplier(self):
        assert detect_volume_spike(150.0, [100.0] * 10, 2.0).kind is SignalKind.NONE

    def test_empty_window(self):
        with pytest.raises(InsufficientData):
            detect_volume_spike(300.0, [], 2.0)

    def test_zero_average(self):
        with pytest.raises(ArithmeticDegenerate):
            detect_volume_spike(300.0, [0.0, 0.0], 2.0)


class TestBandBreakout:
    BANDS = BollingerBands(middle=5.0, upper=9.0, lower=1.0, stddev=2.0)

    def test_touching_bands_is_not_a_breakout(self):
        assert detect_band_breakout(9.0, self.BANDS).kind is SignalKind.NONE
        assert detect_band_breakout(1.0, self.BANDS).kind is SignalKind.NONE

    def test_upper(self):
        assert detect_band_breakout(9.01, self.BANDS).kind is SignalKind.BAND_UPPER_BREAKOUT

    def test_lower(self):
        assert detect_band_breakout(0.99, self.BANDS).kind is SignalKind.BAND_LOWER_BREAKOUT

    def test_inside(self):
        assert detect_band_breakout(5.0, self.BANDS).kind is SignalKind.NONE
