"""
Tests for message rendering, notification selection and result assembly.

Run with:
    python -m pytest backend/teste/test_assembler.py -v
"""

import json

import structlog
from pydantic import TypeAdapter
from structlog.testing import capture_logs

from candle_signals.infrastructure.logging.logging import invocation_context
from candle_signals.infrastructure.utils.config import parse_strategy_params
from candle_signals.models.signal_models import (
    EmailRequest,
    NotificationRequest,
    Signal,
    SignalKind,
    StrategyOutcome,
    WebhookRequest,
)
from candle_signals.services.decision.assembler import (
    MESSAGE_TEMPLATES,
    assemble,
    build_notification,
    render_message,
)
from candle_signals.services.notify.dispatcher import LoggingDispatcher


def volume_outcome(kind=SignalKind.VOLUME_SPIKE) -> StrategyOutcome:
    return StrategyOutcome(
        strategy="volume_spike",
        signal=Signal(
            kind,
            {"current_volume": 300.0, "average_volume": 100.0, "ratio": 3.0, "multiplier": 2.0},
        ),
        values={"close": 101.2345, "volume": 300.0, "average_volume": 100.0, "volume_ratio": 3.0},
        parameters={"period": 10, "multiplier": 2.0},
    )


def crossover_outcome() -> StrategyOutcome:
    return StrategyOutcome(
        strategy="sma_crossover",
        signal=Signal(
            SignalKind.BULLISH_CROSSOVER,
            {"fast_previous": 4.6667, "fast_current": 6.0, "slow_previous": 5.2, "slow_current": 5.4},
        ),
        values={"close": 7.0, "fast_sma": 6.0, "slow_sma": 5.4},
        parameters={"fast_period": 3, "slow_period": 5},
    )


class TestRenderMessage:
    def test_every_kind_has_a_template(self):
        assert set(MESSAGE_TEMPLATES) == set(SignalKind)

    def test_volume_spike_message(self):
        assert render_message("BTCUSDT", volume_outcome()) == (
            "BTCUSDT: volume 300.00 is 3.00x the 10-candle average of 100.00 (trigger 2.00x)."
        )

    def test_crossover_message(self):
        assert render_message("BTCUSDT", crossover_outcome()) == (
            "BTCUSDT: SMA(3) crossed above SMA(5) at 6.00 vs 5.40."
        )

    def test_threshold_message(self):
        outcome = StrategyOutcome(
            strategy="rsi_threshold",
            signal=Signal(SignalKind.THRESHOLD_BELOW, {"previous": 31.234, "current": 28.5, "threshold": 30.0}),
            values={"close": 10.0, "rsi": 28.5},
            parameters={"period": 14, "threshold": 30.0, "direction": "below"},
        )
        assert render_message("ETH", outcome) == "ETH: RSI(14) fell below 30.00 (from 31.23 to 28.50)."

    def test_band_message(self):
        outcome = StrategyOutcome(
            strategy="bollinger_breakout",
            signal=Signal(
                SignalKind.BAND_UPPER_BREAKOUT,
                {"price": 110.0, "upper": 105.5, "middle": 100.0, "lower": 94.5},
            ),
            parameters={"period": 20, "multiplier": 2.0},
        )
        assert render_message("SOL", outcome) == (
            "SOL: price 110.00 broke above the upper Bollinger band 105.50 (20, 2.00)."
        )

    def test_decimals_follow_display_setting(self):
        assert "3.000x" in render_message("BTC", volume_outcome(), decimals=3)


class TestNotification:
    def test_none_signal_produces_no_request(self):
        params = parse_strategy_params({"email": "me@example.com"})
        assert build_notification("BTC", [], params) is None

    def test_email_preferred(self):
        params = parse_strategy_params({"email": "me@example.com", "webhook_url": "https://hooks.example.com/x"})
        request = build_notification("BTC", [volume_outcome()], params)
        assert isinstance(request, EmailRequest)
        assert request.kind == "email"
        assert request.recipient == "me@example.com"
        assert request.message.startswith("BTC: volume 300.00")

    def test_webhook_payload(self):
        params = parse_strategy_params({"webhook_url": "https://hooks.example.com/x"})
        request = build_notification("BTC", [volume_outcome()], params)
        assert isinstance(request, WebhookRequest)
        assert request.url == "https://hooks.example.com/x"
        payload = json.loads(request.payload)
        assert payload["ticker"] == "BTC"
        assert payload["signals"] == ["volume-spike"]
        assert payload["strategies"] == ["volume_spike"]

    def test_no_channel_configured(self):
        assert build_notification("BTC", [volume_outcome()], parse_strategy_params({})) is None

    def test_request_kind_selects_model(self):
        adapter = TypeAdapter(NotificationRequest)
        request = adapter.validate_python({"kind": "webhook", "url": "https://hooks.example.com/x", "payload": "{}"})
        assert isinstance(request, WebhookRequest)
        assert isinstance(adapter.validate_python({"kind": "email", "recipient": "a@b.c", "message": "hi"}), EmailRequest)

    def test_layered_messages_are_joined(self):
        params = parse_strategy_params({"email": "me@example.com"})
        request = build_notification("BTC", [crossover_outcome(), volume_outcome()], params)
        assert request.message == (
            "BTC: SMA(3) crossed above SMA(5) at 6.00 vs 5.40. "
            "BTC: volume 300.00 is 3.00x the 10-candle average of 100.00 (trigger 2.00x)."
        )


class TestAssemble:
    def test_result_record(self):
        params = parse_strategy_params({"strategy": "volume_spike", "email": "me@example.com"})
        result = assemble("BTC", [volume_outcome()], params)
        assert result.status == "ok"
        assert result.ticker == "BTC"
        assert result.strategy == "volume_spike"
        assert result.signal is SignalKind.VOLUME_SPIKE
        assert result.values["close"] == 101.23
        assert result.parameters == {"volume_spike": {"period": 10, "multiplier": 2.0}}
        assert result.notification_requested is True
        assert result.notification.recipient == "me@example.com"

    def test_none_signal(self):
        params = parse_strategy_params({"strategy": "volume_spike", "email": "me@example.com"})
        result = assemble("BTC", [volume_outcome(SignalKind.NONE)], params)
        assert result.signal is SignalKind.NONE
        assert result.notification_requested is False
        assert result.notification is None

    def test_primary_signal_is_first_fired(self):
        params = parse_strategy_params({"strategy": "bollinger_breakout,volume_spike"})
        quiet = StrategyOutcome(strategy="bollinger_breakout", signal=Signal.none())
        result = assemble("BTC", [quiet, volume_outcome()], params)
        assert result.signal is SignalKind.VOLUME_SPIKE
        assert [s.signal for s in result.signals] == [SignalKind.NONE, SignalKind.VOLUME_SPIKE]


class TestLoggingDispatcher:
    def test_records_requests(self):
        dispatcher = LoggingDispatcher()
        request = EmailRequest(recipient="me@example.com", message="hi")
        dispatcher.dispatch(request)
        assert dispatcher.sent == [request]

    def test_logs_email_event(self):
        with capture_logs() as logs:
            LoggingDispatcher().dispatch(EmailRequest(recipient="me@example.com", message="hi"))
        assert logs[0]["event"] == "email_notification"
        assert logs[0]["recipient"] == "me@example.com"


class TestInvocationContext:
    def test_fields_bound_inside_block_only(self):
        with invocation_context(command="run", source="stdin"):
            assert structlog.contextvars.get_contextvars() == {"command": "run", "source": "stdin"}
        assert "command" not in structlog.contextvars.get_contextvars()
