"""Application settings loaded from YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

SETTINGS_PATH_ENV = "RECEIPT_SETTINGS_PATH"
MOCK_PRINTER_ENV = "RECEIPT_MOCK_PRINTER"
PRINT_TIMEOUT_ENV = "RECEIPT_PRINT_TIMEOUT_SECONDS"


class AppSettings(BaseModel):
    """Printer connection and rendering settings."""

    model_config = ConfigDict(extra="forbid")

    printer_ip: str | None = None
    printer_port: int = Field(default=9100, ge=1, le=65535)
    timeout_seconds: float = Field(default=10.0, gt=0)
    receipt_width: int = Field(default=32, ge=16, le=80)
    language: Literal["en", "uz"] = "en"
    local_currency: str = "uzs"
    foreign_currency: str = "usd"
    templates_path: Path = Path("templates.json")
    bindings_path: Path = Path("bindings.json")
    cache_ttl_seconds: float = Field(default=300.0, ge=0)
    mock_printer: bool = False
    required_fields: list[str] = Field(default_factory=list)


def load_settings(path: Path | None = None) -> AppSettings:
    """Load and validate settings from YAML.

    Resolution order: explicit ``path``, ``RECEIPT_SETTINGS_PATH``, then the
    packaged ``settings.yaml``.
    """

    env_path = os.getenv(SETTINGS_PATH_ENV)
    default_path = Path(env_path) if env_path else Path(__file__).with_name("settings.yaml")
    settings_path = path or default_path

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    raw = _apply_env_overrides(raw)

    try:
        return AppSettings.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc


def _apply_env_overrides(raw: dict[object, object]) -> dict[object, object]:
    overridden = dict(raw)
    mock_printer = os.getenv(MOCK_PRINTER_ENV)
    if mock_printer is not None:
        overridden["mock_printer"] = mock_printer.strip().lower() in {"1", "true", "yes", "on"}
    timeout = os.getenv(PRINT_TIMEOUT_ENV)
    if timeout is not None:
        try:
            overridden["timeout_seconds"] = float(timeout)
        except ValueError as exc:
            raise ValueError(f"{PRINT_TIMEOUT_ENV} must be a number") from exc
    return overridden
