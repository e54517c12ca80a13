"""Configuration management.

Two layers:
- StrategyParams: per-invocation parameters parsed once from the host's
  string call arguments. Unparseable values fall back to defaults; values that
  parse but are out of range raise InvalidConfiguration.
- AppSettings: process-level settings (log level, display rounding,
  notification dry-run). YAML provides defaults, .env / environment overrides.
"""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from candle_signals.models.errors import InvalidConfiguration


STRATEGY_NAMES: Tuple[str, ...] = (
    "sma_crossover",
    "ema_crossover",
    "rsi_threshold",
    "bollinger_breakout",
    "volume_spike",
)
DEFAULT_STRATEGY = "sma_crossover"


def _parse_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    try:
        f = float(str(v).strip())
    except ValueError:
        return None
    if not math.isfinite(f) or not f.is_integer():
        return None
    return int(f)


def _parse_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(str(v).strip())
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def _parse_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class StrategyParams(BaseModel):
    """Call parameters for one invocation.

    Period fields left as None take the strategy's own default
    (see ``Strategy.defaults``). ``threshold`` has no default and is
    required by ``rsi_threshold``.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    strategies: Tuple[str, ...] = Field(default=(DEFAULT_STRATEGY,), description="Strategies to run, in order")
    ticker: Optional[str] = Field(default=None, description="Ticker to evaluate (default: first in input)")
    fast_period: Optional[int] = Field(default=None, ge=2, description="Fast MA period")
    slow_period: Optional[int] = Field(default=None, ge=2, description="Slow MA period")
    period: Optional[int] = Field(default=None, ge=2, description="RSI / Bollinger / volume window")
    multiplier: float = Field(default=2.0, gt=0, description="Bollinger width or volume spike ratio")
    threshold: Optional[float] = Field(default=None, description="RSI threshold")
    direction: Literal["above", "below"] = Field(default="above")
    email: Optional[str] = Field(default=None, description="Email recipient for notifications")
    webhook_url: Optional[str] = Field(default=None, description="Webhook URL for notifications")

    @field_validator("strategies", mode="before")
    @classmethod
    def parse_strategies(cls, v: Any, info: ValidationInfo) -> Tuple[str, ...]:
        if isinstance(v, str):
            items = v.split(",")
        elif isinstance(v, (list, tuple)):
            items = [str(x) for x in v]
        else:
            items = []
        names = []
        for item in items:
            name = item.strip().lower().replace("-", "_")
            if name in STRATEGY_NAMES and name not in names:
                names.append(name)
        default = (info.context or {}).get("default_strategy", DEFAULT_STRATEGY)
        return tuple(names) or (default,)

    @field_validator("fast_period", "slow_period", "period", mode="before")
    @classmethod
    def parse_period(cls, v: Any) -> Optional[int]:
        return _parse_int(v)

    @field_validator("multiplier", mode="before")
    @classmethod
    def parse_multiplier(cls, v: Any) -> float:
        f = _parse_float(v)
        return 2.0 if f is None else f

    @field_validator("threshold", mode="before")
    @classmethod
    def parse_threshold(cls, v: Any) -> Optional[float]:
        return _parse_float(v)

    @field_validator("direction", mode="before")
    @classmethod
    def parse_direction(cls, v: Any) -> str:
        s = (_parse_str(v) or "").lower()
        return s if s in ("above", "below") else "above"

    @field_validator("ticker", "email", "webhook_url", mode="before")
    @classmethod
    def parse_optional_str(cls, v: Any) -> Optional[str]:
        return _parse_str(v)

    @property
    def strategy_label(self) -> str:
        return ",".join(self.strategies)


def parse_strategy_params(
    call_arguments: Optional[Mapping[str, Any]],
    default_strategy: str = DEFAULT_STRATEGY,
) -> StrategyParams:
    """Parse host call arguments (string-typed) into StrategyParams."""
    data = dict(call_arguments or {})
    if "strategies" not in data:
        data["strategies"] = data.pop("strategy", None) or default_strategy

    try:
        return StrategyParams.model_validate(data, context={"default_strategy": default_strategy})
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        raise InvalidConfiguration(f"{field}: {err.get('msg')}")


# --------- Application settings ---------
class NotificationConfig(BaseModel):
    dry_run: bool = Field(default=True, description="Log notification requests instead of sending")


class AppSettings(BaseSettings):
    """Process-level settings for the CLI / host adapter."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    display_decimals: int = Field(default=2, ge=0, le=8)
    default_strategy: str = Field(default=DEFAULT_STRATEGY)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid:
            raise ValueError(f"Log level must be one of: {sorted(valid)}")
        return str(v).upper()

    @field_validator("default_strategy")
    @classmethod
    def validate_default_strategy(cls, v: str) -> str:
        if str(v).lower() not in STRATEGY_NAMES:
            raise ValueError(f"default_strategy must be one of: {list(STRATEGY_NAMES)}")
        return str(v).lower()

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AppSettings":
        """Load settings from YAML, then apply environment overrides on top."""
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        try:
            base = cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Configuration validation error: {e}")

        return base.with_env_overrides()

    def with_env_overrides(self) -> "AppSettings":
        updates: dict = {}
        if os.getenv("LOG_LEVEL"):
            updates["log_level"] = os.getenv("LOG_LEVEL", self.log_level)
        if os.getenv("DEFAULT_STRATEGY"):
            updates["default_strategy"] = os.getenv("DEFAULT_STRATEGY", self.default_strategy)

        dry_run_env = os.getenv("NOTIFICATIONS__DRY_RUN")
        if dry_run_env is not None:
            updates["notifications"] = {"dry_run": str(dry_run_env).lower() in ("1", "true", "yes")}

        if not updates:
            return self
        return type(self).model_validate({**self.model_dump(), **updates})


def load_settings(config_path: Optional[Path] = None) -> AppSettings:
    """Load settings from YAML + .env (env wins). Defaults when no file is found."""
    load_dotenv(dotenv_path=Path(".env"))

    if config_path is None:
        possible_paths = [Path("config/default.yaml"), Path("config/config.yaml"), Path("config.yaml")]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            return AppSettings.model_validate({}).with_env_overrides()

    return AppSettings.from_yaml(config_path)
