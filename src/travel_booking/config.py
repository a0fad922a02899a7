"""Client settings loaded from YAML and the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .selection import SelectionPolicy

DEFAULT_API_BASE_URL = "http://localhost:8000/api/v1"

ENVIRONMENT_OVERRIDES = {
    "TRAVEL_BOOKING_API_URL": "api_base_url",
    "TRAVEL_BOOKING_TIMEOUT": "timeout_seconds",
    "TRAVEL_BOOKING_SELECTION_POLICY": "selection_policy",
    "TRAVEL_BOOKING_LOG_LEVEL": "log_level",
    "TRAVEL_BOOKING_LOG_FORMAT": "log_format",
}


def _default_config_path() -> Path | None:
    """Return the default client configuration path if present."""

    for parent in Path(__file__).resolve().parents:
        candidate = parent / "config" / "booking_client.yaml"
        if candidate.exists():
            return candidate
    return None


class ClientSettings(BaseModel):
    """Connection and behavior settings for the booking console."""

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL, description="Base URL of the REST backend"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )
    selection_policy: SelectionPolicy = Field(
        default=SelectionPolicy.ALL_LEGS,
        description="Which legs require a selection before submission",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    log_format: Literal["json", "text"] = Field(
        default="json", description="Log line format"
    )

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_yaml(cls, content: str) -> ClientSettings:
        """Load settings from YAML content; an empty document yields defaults."""

        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("Client configuration must be a mapping")
        return cls.model_validate(data.get("client", data))

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> ClientSettings:
        """Load settings from a YAML file, falling back to defaults when none exists."""

        if path is not None:
            target_path = Path(path)
            if not target_path.exists():
                raise FileNotFoundError(f"Client configuration not found: {target_path}")
        else:
            target_path = _default_config_path()
            if target_path is None:
                return cls()

        return cls.from_yaml(target_path.read_text(encoding="utf-8"))

    @classmethod
    def from_environment(
        cls,
        path: str | Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> ClientSettings:
        """Load file settings and apply ``TRAVEL_BOOKING_*`` environment overrides."""

        env = os.environ if environ is None else environ
        base = cls.from_file(path)
        overrides = {
            field: env[name]
            for name, field in ENVIRONMENT_OVERRIDES.items()
            if env.get(name)
        }
        if not overrides:
            return base
        return cls.model_validate({**base.model_dump(), **overrides})
