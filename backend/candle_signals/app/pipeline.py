"""One invocation: host input document in, result document out.

Input document::

    {
      "candles": {"BTCUSDT": [{"timestamp": 1700000000, "open": 1, "high": 1,
                               "low": 1, "close": 1, "volume": 10}, ...]},
      "call_arguments": {"strategy": "sma_crossover", "fast_period": "10", ...}
    }

Candle rows may also be ``[timestamp, open, high, low, close, volume]`` arrays.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from candle_signals.infrastructure.logging.logging import get_logger
from candle_signals.infrastructure.utils.config import AppSettings, parse_strategy_params
from candle_signals.models.errors import InvalidConfiguration, SignalError
from candle_signals.models.market_models import CandleSeries
from candle_signals.models.signal_models import ErrorResult, SignalResult
from candle_signals.services.decision.assembler import assemble
from candle_signals.services.strategy.strategies import run_strategies


Result = Union[SignalResult, ErrorResult]


def parse_input(input_json: str) -> Tuple[Dict[str, CandleSeries], Dict[str, Any]]:
    """Decode the host document into per-ticker series and raw call arguments."""
    try:
        doc = json.loads(input_json)
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration(f"input is not valid JSON: {e}")

    if not isinstance(doc, dict):
        raise InvalidConfiguration("input must be a JSON object")

    raw_candles = doc.get("candles") or {}
    if not isinstance(raw_candles, dict):
        raise InvalidConfiguration("candles must map ticker symbols to candle lists")

    call_arguments = doc.get("call_arguments") or {}
    if not isinstance(call_arguments, dict):
        raise InvalidConfiguration("call_arguments must be an object")

    series = {str(ticker): CandleSeries.from_rows(rows) for ticker, rows in raw_candles.items()}
    return series, call_arguments


def select_series(
    candles_by_ticker: Mapping[str, CandleSeries],
    ticker: Optional[str],
) -> Tuple[str, CandleSeries]:
    if not candles_by_ticker:
        raise InvalidConfiguration("no candle data supplied")
    if ticker is None:
        ticker = next(iter(candles_by_ticker))
    if ticker not in candles_by_ticker:
        raise InvalidConfiguration(f"no candles supplied for ticker {ticker!r}")
    return ticker, candles_by_ticker[ticker]


def evaluate(
    candles_by_ticker: Mapping[str, CandleSeries],
    call_arguments: Optional[Mapping[str, Any]],
    settings: Optional[AppSettings] = None,
) -> Result:
    """Run the configured strategies on one ticker; errors become ErrorResult."""
    settings = settings or AppSettings.model_validate({})
    log = get_logger("pipeline")

    try:
        params = parse_strategy_params(call_arguments, default_strategy=settings.default_strategy)
        ticker, series = select_series(candles_by_ticker, params.ticker)
        log = log.bind(ticker=ticker, strategy=params.strategy_label)

        outcomes = run_strategies(series, params)
        result = assemble(ticker, outcomes, params, decimals=settings.display_decimals)
    except SignalError as e:
        log.warning("invocation_failed", error=type(e).__name__, message=str(e))
        return ErrorResult(message=str(e))

    log.info(
        "strategy_evaluated",
        candles=len(series),
        signal=result.signal.value,
        notification_requested=result.notification_requested,
    )
    return result


def dump_result(result: Result) -> str:
    return json.dumps(result.model_dump(mode="json"), sort_keys=True, separators=(",", ":"), allow_nan=False)


def run(input_json: str, settings: Optional[AppSettings] = None) -> str:
    """Host entry: JSON document in, JSON result out."""
    try:
        candles_by_ticker, call_arguments = parse_input(input_json)
    except SignalError as e:
        get_logger("pipeline").warning("invalid_input", error=type(e).__name__, message=str(e))
        return dump_result(ErrorResult(message=str(e)))

    return dump_result(evaluate(candles_by_ticker, call_arguments, settings))
