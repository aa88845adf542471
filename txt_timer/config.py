from __future__ import annotations

import re
from pathlib import Path
from re import Pattern
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.timer import TIME_GROUP


DEFAULT_CONFIG_PATH = Path("txt-timer.yaml")


class TimerConfig(BaseModel):
    """Timestamp source: monotonic arrival time, ISO preset, or custom regex.
    """

    iso: bool = Field(False, description="Extract YYYY-mm-ddTHH:MM:SS.fffZ timestamps")
    regex: Optional[Pattern[str]] = Field(None, description="Pattern with a (?P<time>...) group")
    format: Optional[str] = Field(None, description="strptime format of the captured text, no timezone")

    @field_validator("regex", mode="before")
    @classmethod
    def _compile_regex(cls, v):  # type: ignore[no-untyped-def]
        if v is None or isinstance(v, re.Pattern):
            return v
        try:
            return re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid regex: {exc}") from exc

    @field_validator("regex")
    @classmethod
    def _require_time_group(cls, v: Optional[Pattern[str]]) -> Optional[Pattern[str]]:
        if v is not None and TIME_GROUP not in v.groupindex:
            raise ValueError("regex must have a `(?P<time>exp)` capturing group")
        return v

    @model_validator(mode="after")
    def _check_combination(self) -> "TimerConfig":
        has_regex = self.regex is not None
        has_format = self.format is not None
        if self.iso and (has_regex or has_format):
            raise ValueError("time regex and format must be either both present or absent")
        if has_regex != has_format:
            raise ValueError("time regex and format must be either both present or absent")
        return self

    @property
    def extracts(self) -> bool:
        return self.iso or self.regex is not None


class RunConfig(BaseModel):
    quiet: bool = Field(False, description="Do not relay input lines")
    count: int = Field(5, ge=0, description="Number of top delays to report")
    lines_before: int = Field(5, ge=0, description="Context lines kept before each retained line")
    color_range: float = Field(0.2, description="Seconds spanned by the delay color scale")
    prepend_time: bool = Field(False, description="Print a stamp line before each stamped line")
    output_maximals: Optional[Path] = Field(None, description="Write the report to this file")
    timer: TimerConfig = Field(default_factory=TimerConfig)

    @field_validator("color_range")
    @classmethod
    def _positive_color_range(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("color range must be positive")
        return v


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TXT_TIMER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    LOG_LEVEL: str = "WARNING"
    QUEUE_SIZE: int = Field(1024, gt=0)


def load_yaml(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Read option defaults from YAML; a missing default file yields no overrides."""
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return {}
        config_path = DEFAULT_CONFIG_PATH

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ValueError(f"Cannot read {config_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid {config_path}: expected a mapping")
    return raw


def build_run_config(
    overrides: Dict[str, Any], config_path: Optional[Path] = None
) -> RunConfig:
    """Merge YAML defaults with command-line overrides (None means unset)."""
    data = load_yaml(config_path)
    timer = dict(data.pop("timer", None) or {})
    for key, value in overrides.items():
        if value is None:
            continue
        if key in TimerConfig.model_fields:
            timer[key] = value
        else:
            data[key] = value
    data["timer"] = timer
    return RunConfig(**data)


def first_error_message(exc: ValidationError) -> str:
    """Plain message of the first validation error, without pydantic's prefix."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    ctx = err.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]
