from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from net_indicator.core.exceptions import ConfigError, InvalidConfigurationError

MIN_INTERVAL_SECONDS = 1.0
DEFAULT_SLOT_CAPACITY = 64


class SamplingConfig(BaseModel):
    interval_seconds: float = 2.0
    slot_capacity: int = DEFAULT_SLOT_CAPACITY

    @field_validator("interval_seconds")
    @classmethod
    def _interval_min(cls, v: float) -> float:
        if v < MIN_INTERVAL_SECONDS:
            raise ValueError(f"interval_seconds must be >= {MIN_INTERVAL_SECONDS:g}")
        return v

    @field_validator("slot_capacity")
    @classmethod
    def _capacity_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("slot_capacity must be >= 1")
        return v


class InterfacesConfig(BaseModel):
    exclude_names: list[str] = Field(default_factory=lambda: ["lo", "lo0"])
    exclude_prefixes: list[str] = Field(
        default_factory=lambda: ["docker", "veth", "br-", "virbr", "awdl", "llw", "bridge", "vmnet"]
    )
    vpn_prefixes: list[str] = Field(default_factory=lambda: ["tun", "tap", "wg", "utun", "ppp", "ipsec"])
    include_vpn: bool = False
    watch_interval_seconds: float = 2.0

    @field_validator("watch_interval_seconds")
    @classmethod
    def _watch_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("watch_interval_seconds must be > 0")
        return v


class RunStateConfig(BaseModel):
    enabled: bool = True
    poll_seconds: float = 5.0
    power_save_battery_percent: int | None = 20

    @field_validator("power_save_battery_percent")
    @classmethod
    def _percent_bounds(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= 100:
            raise ValueError("power_save_battery_percent must be within 0..100")
        return v


class GlyphConfig(BaseModel):
    size: int = 48
    font_path: str | None = None

    @field_validator("size")
    @classmethod
    def _size_min(cls, v: int) -> int:
        if v < 16:
            raise ValueError("glyph size must be >= 16")
        return v


class UIConfig(BaseModel):
    enabled: bool = True
    refresh_hz: float = 2.0


class LoggingConfig(BaseModel):
    dir: str = "./logs"
    level: str = "INFO"
    console: bool = True


class AppConfig(BaseModel):
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    interfaces: InterfacesConfig = Field(default_factory=InterfacesConfig)
    run_state: RunStateConfig = Field(default_factory=RunStateConfig)
    glyph: GlyphConfig = Field(default_factory=GlyphConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except Exception as exc:
        raise ConfigError(f"Failed reading config yaml: {path}") from exc


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    load_dotenv(override=False)
    raw: dict[str, Any] = load_yaml(Path(config_path)) if config_path else {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")
    if overrides:
        raw = _deep_merge_dicts(raw, overrides)

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as exc:
        raise InvalidConfigurationError(str(exc)) from exc


def _deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge_dicts(out[k], v)
        else:
            out[k] = v
    return out
