"""Configuration validation models using Pydantic."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError
from ..schema import FIELD_KINDS, FieldKind
from ..standards.naming import normalize_header


_NUMERIC_KINDS = (FieldKind.NUMBER, FieldKind.PERCENTAGE)


class AliasTableConfig(BaseModel):
    """Header aliases grouped per canonical field and per locale."""

    aliases: Dict[str, Dict[str, List[str]]] = Field(..., min_length=1)

    @field_validator("aliases")
    @classmethod
    def validate_fields(cls, v):
        unknown = sorted(k for k in v if k not in FIELD_KINDS)
        if unknown:
            raise ValueError(f"aliases reference unknown canonical fields: {unknown}")
        return v

    @model_validator(mode="after")
    def validate_unique_aliases(self):
        """An alias may appear several times but must always name one field."""
        seen: Dict[str, str] = {}
        for canonical, locales in self.aliases.items():
            for names in locales.values():
                for name in names:
                    key = normalize_header(name)
                    if not key:
                        raise ValueError(f"empty alias declared for '{canonical}'")
                    previous = seen.setdefault(key, canonical)
                    if previous != canonical:
                        raise ValueError(f"alias '{key}' maps to both '{previous}' and '{canonical}'")
        return self

    def to_lookup(self) -> Dict[str, str]:
        """Flatten into normalized alias -> canonical field."""
        lookup: Dict[str, str] = {}
        for canonical, locales in self.aliases.items():
            for names in locales.values():
                for name in names:
                    lookup[normalize_header(name)] = canonical
        return lookup


class DerivedMetricSpec(BaseModel):
    """numerator / denominator / scale of one ratio metric."""

    numerator: str
    denominator: str
    scale: float = Field(1.0, gt=0, description="Multiplier applied to the ratio (100 for %, 1000 for per-mille)")

    @field_validator("numerator", "denominator")
    @classmethod
    def validate_component(cls, v):
        kind = FIELD_KINDS.get(v)
        if kind is None:
            raise ValueError(f"unknown canonical field '{v}'")
        if kind not in _NUMERIC_KINDS:
            raise ValueError(f"field '{v}' is not numeric")
        return v


class DerivedMetricTableConfig(BaseModel):
    derived_metrics: Dict[str, DerivedMetricSpec] = Field(..., min_length=1)


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    logs_dir: str = "logs"
    file_name: str = "system.log"


class DashboardConfig(BaseModel):
    top_n: int = Field(10, ge=1, description="Categories kept per categorical chart")


class AppConfig(BaseModel):
    """Settings for the command-line runner."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    header_aliases: Optional[str] = Field(None, description="Override path for the header alias YAML")
    derived_metrics: Optional[str] = Field(None, description="Override path for the derived metric YAML")
    output_format: Literal["json", "xlsx"] = "json"


def _read_yaml(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    with open(p, "r", encoding="utf-8") as stream:
        data = yaml.safe_load(stream) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {p} must contain a mapping at the top level")
    return data


def _validate(model, data: dict, source: str | Path):
    try:
        return model(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {source}: {exc}") from exc


def load_alias_config(path: str | Path) -> AliasTableConfig:
    return _validate(AliasTableConfig, _read_yaml(path), path)


def load_derived_metric_config(path: str | Path) -> DerivedMetricTableConfig:
    return _validate(DerivedMetricTableConfig, _read_yaml(path), path)


def load_and_validate_config(config_dict: dict | None) -> AppConfig:
    """Validate the runner configuration; an empty mapping yields defaults."""
    return _validate(AppConfig, dict(config_dict or {}), "config")


def load_app_config(path: str | Path | None) -> AppConfig:
    if path is None:
        return AppConfig()
    return load_and_validate_config(_read_yaml(path))
