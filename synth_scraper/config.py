"""Runtime settings for synth-scraper.

Values come from environment variables (a `.env` file in the working
directory is loaded by `load_config`) and can be overridden by CLI flags.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from .core.codegen_client import API_KEY_ENV_VARS, detect_api_key
from .core.exceptions import ConfigurationFailure
from .core.models import Target


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationFailure(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationFailure(f"{name} must be a number, got {raw!r}")


def parse_targets(raw: Any) -> List[Target]:
    """Turn a JSON string or list of {url, category|content} dicts into Targets"""
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ConfigurationFailure(f"Targets are not valid JSON: {e}")
    if not isinstance(raw, list):
        raise ConfigurationFailure("Targets must be a JSON list of {url, category} objects")
    try:
        return [Target.from_dict(item) for item in raw]
    except (AttributeError, ValueError) as e:
        raise ConfigurationFailure(f"Invalid target: {e}")


@dataclass
class ScraperConfig:
    # ------------------------------------------------------------------
    # Targets and credentials
    # ------------------------------------------------------------------
    targets: List[Target] = field(
        default_factory=lambda: parse_targets(os.environ.get("URLS_TO_PROCESS"))
    )
    api_key: Optional[str] = field(default_factory=lambda: detect_api_key(quiet=True))
    model_name: Optional[str] = field(
        default_factory=lambda: os.environ.get("SYNTH_SCRAPER_MODEL") or None
    )

    # ------------------------------------------------------------------
    # Workspace
    # ------------------------------------------------------------------
    workdir: Path = field(
        default_factory=lambda: Path(os.environ.get("SYNTH_SCRAPER_WORKDIR", "."))
    )

    @property
    def store_dir(self) -> Path:
        return self.workdir / "store"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    capture_mode: str = field(
        default_factory=lambda: os.environ.get("SYNTH_SCRAPER_CAPTURE_MODE", "browser")
    )
    capture_timeout: float = field(
        default_factory=lambda: _env_float("SYNTH_SCRAPER_CAPTURE_TIMEOUT", 60.0)
    )
    snippet_max_chars: int = field(
        default_factory=lambda: _env_int("SYNTH_SCRAPER_SNIPPET_MAX_CHARS", 3000)
    )
    headless: bool = True

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------
    max_attempts: int = field(
        default_factory=lambda: _env_int("SYNTH_SCRAPER_MAX_ATTEMPTS", 3)
    )
    rate_limit_attempts: int = 3
    backoff_initial: float = 1.0
    backoff_cap: float = 8.0

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    poll_attempts: int = field(
        default_factory=lambda: _env_int("SYNTH_SCRAPER_POLL_ATTEMPTS", 10)
    )
    poll_interval: float = field(
        default_factory=lambda: _env_float("SYNTH_SCRAPER_POLL_INTERVAL", 1.0)
    )
    exec_timeout: float = field(
        default_factory=lambda: _env_float("SYNTH_SCRAPER_EXEC_TIMEOUT", 60.0)
    )

    force_regenerate: bool = False

    def validate(self, require_credential: bool = True, require_targets: bool = True) -> None:
        """Raise ConfigurationFailure before any Target is processed"""
        if require_credential and not self.api_key:
            names = ", ".join(name for name, _ in API_KEY_ENV_VARS)
            raise ConfigurationFailure(f"API key is missing. Set one of: {names}")
        if require_targets and not self.targets:
            raise ConfigurationFailure(
                'No URLs provided. Set URLS_TO_PROCESS or pass --target/--targets'
            )
        if self.capture_mode not in ("browser", "static"):
            raise ConfigurationFailure(
                f"Invalid capture mode: {self.capture_mode}. Use 'browser' or 'static'"
            )
        for name in ("max_attempts", "rate_limit_attempts", "poll_attempts", "snippet_max_chars"):
            if getattr(self, name) < 1:
                raise ConfigurationFailure(f"{name} must be >= 1")
        if self.poll_interval < 0 or self.exec_timeout <= 0 or self.capture_timeout <= 0:
            raise ConfigurationFailure("Timeouts must be positive and poll_interval non-negative")


def load_config(env_file: Optional[str] = None, **overrides: Any) -> ScraperConfig:
    """
    Load `.env` (without overriding real environment variables) and build the config

    Keyword overrides that are None are ignored so CLI flags can be passed through blindly.
    """
    load_dotenv(env_file or Path.cwd() / ".env", override=False)
    config = ScraperConfig()
    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise ConfigurationFailure(f"Unknown configuration option: {key}")
        setattr(config, key, value)
    return config
