"""Market domain models: candles, candle series and indicator series."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from candle_signals.models.errors import InvalidSeries


_ROW_FIELDS = ("timestamp", "open", "high", "low", "close", "volume")


@dataclass(frozen=True)
class Candle:
    timestamp: int  # seconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def from_row(cls, row: Any) -> "Candle":
        """Build a candle from a host row: a mapping with OHLCV keys or a 6-item sequence."""
        if isinstance(row, Mapping):
            try:
                values = [row[name] for name in _ROW_FIELDS[:5]] + [row.get("volume", 0.0)]
            except KeyError as e:
                raise InvalidSeries(f"candle row missing field {e.args[0]!r}")
        elif isinstance(row, (list, tuple)) and len(row) >= 5:
            values = list(row[:6]) + [0.0] * (6 - len(row[:6]))
        else:
            raise InvalidSeries(f"unsupported candle row: {row!r}")

        try:
            timestamp = int(values[0])
            o, h, l, c, v = (float(x) for x in values[1:])
        except (TypeError, ValueError, OverflowError):
            raise InvalidSeries(f"non-numeric candle row: {row!r}")

        if not all(math.isfinite(x) for x in (o, h, l, c, v)):
            raise InvalidSeries(f"non-finite value in candle row at {timestamp}")

        return cls(timestamp=timestamp, open=o, high=h, low=l, close=c, volume=v)


class CandleSeries:
    """Ordered, read-only candle sequence (index 0 oldest, last index current).

    Timestamps must be non-decreasing; insertion order is chronological order.
    """

    __slots__ = ("_candles",)

    def __init__(self, candles: Iterable[Candle]) -> None:
        items: Tuple[Candle, ...] = tuple(candles)
        for prev, cur in zip(items, items[1:]):
            if cur.timestamp < prev.timestamp:
                raise InvalidSeries(
                    f"candles out of order: {cur.timestamp} after {prev.timestamp}"
                )
        self._candles = items

    @classmethod
    def from_rows(cls, rows: Sequence[Any]) -> "CandleSeries":
        if not isinstance(rows, (list, tuple)):
            raise InvalidSeries("candle series must be a list of rows")
        return cls(Candle.from_row(r) for r in rows)

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self):
        return iter(self._candles)

    def __getitem__(self, index):
        return self._candles[index]

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    def closes(self) -> List[float]:
        return [c.close for c in self._candles]

    def volumes(self) -> List[float]:
        return [c.volume for c in self._candles]


@dataclass(frozen=True)
class IndicatorSeries:
    """Indicator values aligned to the tail of a source series.

    ``offset`` is the source index of ``values[0]``; source positions before it
    are warm-up and have no value.
    """

    name: str
    values: Tuple[float, ...]
    offset: int = 0

    @classmethod
    def aligned(cls, name: str, values: Sequence[float], source_length: int) -> "IndicatorSeries":
        return cls(name=name, values=tuple(values), offset=max(0, source_length - len(values)))

    def __len__(self) -> int:
        return len(self.values)

    def value_at(self, source_index: int) -> Optional[float]:
        i = source_index - self.offset
        if i < 0 or i >= len(self.values):
            return None
        return self.values[i]

    def trailing(self, count: int) -> Optional[Tuple[float, ...]]:
        """Last ``count`` values, or None when fewer are defined."""
        if count <= 0 or len(self.values) < count:
            return None
        return self.values[-count:]


@dataclass(frozen=True)
class BollingerBands:
    middle: float
    upper: float
    lower: float
    stddev: float
