"""Signal, notification request and result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class SignalKind(str, Enum):
    NONE = "none"
    BULLISH_CROSSOVER = "bullish-crossover"
    BEARISH_CROSSOVER = "bearish-crossover"
    THRESHOLD_ABOVE = "threshold-above"
    THRESHOLD_BELOW = "threshold-below"
    VOLUME_SPIKE = "volume-spike"
    BAND_UPPER_BREAKOUT = "band-upper-breakout"
    BAND_LOWER_BREAKOUT = "band-lower-breakout"


@dataclass(frozen=True)
class Signal:
    kind: SignalKind
    evidence: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def none(cls, **evidence: float) -> "Signal":
        return cls(SignalKind.NONE, dict(evidence))

    @property
    def fired(self) -> bool:
        return self.kind is not SignalKind.NONE


@dataclass(frozen=True)
class StrategyOutcome:
    """What one strategy computed and detected for one series."""

    strategy: str
    signal: Signal
    values: Dict[str, float] = field(default_factory=dict)
    parameters: Dict[str, Any] = field(default_factory=dict)


# --------- Notification requests ---------
class EmailRequest(BaseModel):
    kind: Literal["email"] = "email"
    recipient: str
    message: str


class WebhookRequest(BaseModel):
    kind: Literal["webhook"] = "webhook"
    url: str
    payload: str


NotificationRequest = Annotated[Union[EmailRequest, WebhookRequest], Field(discriminator="kind")]


# --------- Output records ---------
class SignalRecord(BaseModel):
    strategy: str
    signal: SignalKind
    values: Dict[str, float] = Field(default_factory=dict)
    evidence: Dict[str, float] = Field(default_factory=dict)


class SignalResult(BaseModel):
    status: Literal["ok"] = "ok"
    ticker: str
    strategy: str
    signal: SignalKind
    signals: List[SignalRecord]
    values: Dict[str, float] = Field(default_factory=dict)
    parameters: Dict[str, Any] = Field(default_factory=dict)
    notification_requested: bool = False
    notification: Optional[NotificationRequest] = None


class ErrorResult(BaseModel):
    status: Literal["error"] = "error"
    message: str
