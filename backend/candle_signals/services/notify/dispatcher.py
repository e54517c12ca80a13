"""Host-side execution of notification requests.

The evaluation core only returns request objects; a host wires a dispatcher
to actually deliver them. The bundled dispatcher is dry-run only.
"""

from __future__ import annotations

from typing import List, Protocol

from candle_signals.infrastructure.logging.logging import get_logger
from candle_signals.models.signal_models import EmailRequest, NotificationRequest, WebhookRequest


class NotificationDispatcher(Protocol):
    def dispatch(self, request: NotificationRequest) -> None: ...


class LoggingDispatcher:
    """Logs requests instead of sending them; keeps what it saw in ``sent``."""

    def __init__(self) -> None:
        self.sent: List[NotificationRequest] = []
        self._log = get_logger("dispatcher", dry_run=True)

    def dispatch(self, request: NotificationRequest) -> None:
        if isinstance(request, EmailRequest):
            self._log.info("email_notification", recipient=request.recipient, message=request.message)
        elif isinstance(request, WebhookRequest):
            self._log.info("webhook_notification", url=request.url, payload=request.payload)
        else:
            raise TypeError(f"unsupported notification request: {type(request).__name__}")
        self.sent.append(request)
