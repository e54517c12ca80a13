"""Turn strategy outcomes into a result record and at most one notification request."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from candle_signals.infrastructure.utils.config import StrategyParams
from candle_signals.models.signal_models import (
    EmailRequest,
    NotificationRequest,
    SignalKind,
    SignalRecord,
    SignalResult,
    StrategyOutcome,
    WebhookRequest,
)


MESSAGE_TEMPLATES: Dict[SignalKind, str] = {
    SignalKind.NONE: "{ticker}: no {label} signal.",
    SignalKind.BULLISH_CROSSOVER: (
        "{ticker}: {label}({fast_period}) crossed above {label}({slow_period}) "
        "at {fast_current} vs {slow_current}."
    ),
    SignalKind.BEARISH_CROSSOVER: (
        "{ticker}: {label}({fast_period}) crossed below {label}({slow_period}) "
        "at {fast_current} vs {slow_current}."
    ),
    SignalKind.THRESHOLD_ABOVE: (
        "{ticker}: {label}({period}) rose above {threshold} (from {previous} to {current})."
    ),
    SignalKind.THRESHOLD_BELOW: (
        "{ticker}: {label}({period}) fell below {threshold} (from {previous} to {current})."
    ),
    SignalKind.VOLUME_SPIKE: (
        "{ticker}: volume {current_volume} is {ratio}x the {period}-candle average "
        "of {average_volume} (trigger {multiplier}x)."
    ),
    SignalKind.BAND_UPPER_BREAKOUT: (
        "{ticker}: price {price} broke above the upper Bollinger band {upper} "
        "({period}, {multiplier})."
    ),
    SignalKind.BAND_LOWER_BREAKOUT: (
        "{ticker}: price {price} broke below the lower Bollinger band {lower} "
        "({period}, {multiplier})."
    ),
}

STRATEGY_LABELS: Dict[str, str] = {
    "sma_crossover": "SMA",
    "ema_crossover": "EMA",
    "rsi_threshold": "RSI",
    "bollinger_breakout": "Bollinger",
    "volume_spike": "volume",
}


def _display(value: Any, decimals: int) -> str:
    if isinstance(value, float):
        return f"{value:.{decimals}f}"
    return str(value)


def _rounded(values: Dict[str, float], decimals: int) -> Dict[str, float]:
    return {k: round(float(v), decimals) for k, v in values.items()}


def render_message(ticker: str, outcome: StrategyOutcome, decimals: int = 2) -> str:
    """Fixed sentence for the outcome's signal kind, values rounded for display."""
    context: Dict[str, str] = {
        "ticker": ticker,
        "label": STRATEGY_LABELS.get(outcome.strategy, outcome.strategy),
    }
    for source in (outcome.parameters, outcome.values, outcome.signal.evidence):
        context.update({k: _display(v, decimals) for k, v in source.items()})
    return MESSAGE_TEMPLATES[outcome.signal.kind].format_map(context)


def build_notification(
    ticker: str,
    fired: Sequence[StrategyOutcome],
    params: StrategyParams,
    decimals: int = 2,
) -> Optional[NotificationRequest]:
    """Email when a recipient is configured, else webhook, else nothing."""
    if not fired:
        return None

    message = " ".join(render_message(ticker, o, decimals) for o in fired)

    if params.email:
        return EmailRequest(recipient=params.email, message=message)

    if params.webhook_url:
        payload = json.dumps(
            {
                "ticker": ticker,
                "signals": [o.signal.kind.value for o in fired],
                "strategies": [o.strategy for o in fired],
                "message": message,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return WebhookRequest(url=params.webhook_url, payload=payload)

    return None


def assemble(
    ticker: str,
    outcomes: Sequence[StrategyOutcome],
    params: StrategyParams,
    decimals: int = 2,
) -> SignalResult:
    fired: List[StrategyOutcome] = [o for o in outcomes if o.signal.fired]
    primary = fired[0].signal.kind if fired else SignalKind.NONE

    values: Dict[str, float] = {}
    for o in outcomes:
        values.update(_rounded(o.values, decimals))

    notification = build_notification(ticker, fired, params, decimals)

    return SignalResult(
        ticker=ticker,
        strategy=params.strategy_label,
        signal=primary,
        signals=[
            SignalRecord(
                strategy=o.strategy,
                signal=o.signal.kind,
                values=_rounded(o.values, decimals),
                evidence=_rounded(o.signal.evidence, decimals),
            )
            for o in outcomes
        ],
        values=values,
        parameters={o.strategy: dict(o.parameters) for o in outcomes},
        notification_requested=notification is not None,
        notification=notification,
    )
