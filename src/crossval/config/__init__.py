"""
Pydantic configuration schemas for crossval.

Design principle: nothing is required. An empty YAML file is a valid
config and yields the default thresholds, the default source labels
and whatever logger the caller already set up. Every field that is
set overrides exactly that field.

Usage:
    config = CrossValConfig.from_yaml("crossval.yaml")
    validator = CrossValidator(config.thresholds)
    config.to_dict()
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ═══════════════════════════════════════════════════════════════════
#  Validation thresholds
# ═══════════════════════════════════════════════════════════════════

class ThresholdsConfig(BaseModel):
    """
    Partial override of the validator thresholds.

    Keys may be written in snake_case (max_time_drift) or in the
    camelCase the collector components use (maxTimeDrift). Unknown keys
    are ignored.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    max_time_drift: Optional[int] = Field(None, ge=0)            # ms
    min_activity_correlation: Optional[float] = Field(None, ge=0, le=1)
    max_data_age: Optional[int] = Field(None, ge=0)              # ms
    max_user_diff_ratio: Optional[float] = Field(None, ge=0)

    def to_overrides(self) -> dict[str, Any]:
        """Only the fields that were set, keyed by snake_case name."""
        return self.model_dump(exclude_none=True)


# ═══════════════════════════════════════════════════════════════════
#  Source labels
# ═══════════════════════════════════════════════════════════════════

class SourceConfig(BaseModel):
    source_a: str = "github"
    source_b: str = "near"


# ═══════════════════════════════════════════════════════════════════
#  Logger Config
# ═══════════════════════════════════════════════════════════════════

class LogAdapterConfig(BaseModel):
    type: str
    min_level: int | str = 20
    color: Optional[bool] = None              # terminal
    path: Optional[str] = None                # file
    rotation: Optional[str] = None            # file
    ring_buffer_size: Optional[int] = None    # agent
    formatter: Optional[str] = None           # any


class LogRoutingConfig(BaseModel):
    tag_routes: Optional[dict[str, list[str]]] = None


class LoggerConfig(BaseModel):
    current_level: int | str = 20  # INFO
    adapters: Optional[dict[str, LogAdapterConfig]] = None
    tag_levels: Optional[dict[str, int | str]] = None
    routing: Optional[LogRoutingConfig] = None

    def to_logger_dict(self) -> dict:
        """Shape expected by CrossValLogger.configure()."""
        return self.model_dump(exclude_none=True)


# ═══════════════════════════════════════════════════════════════════
#  Top-Level Config
# ═══════════════════════════════════════════════════════════════════

class CrossValConfig(BaseModel):
    """
    Example:
        thresholds:
          maxTimeDrift: 3600000
          minActivityCorrelation: 0.25
        sources:
          source_a: github
          source_b: near
        fail_on_warnings: false
        logger:
          current_level: INFO
          adapters:
            terminal: {type: terminal, color: false}
    """

    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    sources: SourceConfig = Field(default_factory=SourceConfig)
    fail_on_warnings: bool = False
    logger: Optional[LoggerConfig] = None

    @property
    def config_hash(self) -> str:
        """SHA256 of the canonical config dict."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode()).hexdigest()

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CrossValConfig":
        path = Path(path)
        return cls.from_yaml_string(path.read_text(encoding="utf-8"))

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> "CrossValConfig":
        data = yaml.safe_load(yaml_string)
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "CrossValConfig":
        return cls.model_validate(data)

    def to_dict(self, exclude_none: bool = True) -> dict:
        return self.model_dump(exclude_none=exclude_none)
