"""Calcpad runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence


THEMES = ("light", "dark")


def _env(name: str) -> Optional[str]:
    """Stripped value of ``name``; unset or blank reads as None."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_delay_ms(name: str, default: int) -> int:
    raw = _env(name)
    try:
        delay = default if raw is None else int(raw)
    except ValueError:
        return default
    return delay if delay > 0 else 0


def _env_theme(name: str, default: str, themes: Sequence[str] = THEMES) -> str:
    raw = (_env(name) or "").lower()
    return raw if raw in themes else default


def _default_database_url() -> str:
    # Local SQLite under repo-root data/.
    repo_root = Path(__file__).resolve().parents[1]
    data_dir = repo_root / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(data_dir / 'calculator.db').as_posix()}"


@dataclass(frozen=True)
class CalculatorConfig:
    """Configuration for the calculator app.

    Environment variables:
    - CALCULATOR_DATABASE_URL: calculator-specific database URL
    - PLATFORM_DATABASE_URL: shared database URL
    - CALCULATOR_HISTORY_KEY: storage key for history (default: calculator_history)
    - CALCULATOR_THEME_KEY: storage key for the theme (default: calculator_theme)
    - CALCULATOR_DEFAULT_THEME: light|dark (default: light)
    - CALCULATOR_FLUSH_DELAY_MS: history write debounce (default: 500)
    - CALCULATOR_LOG_LEVEL: logging level name (default: INFO)

    If no database URL is set, defaults to local SQLite at data/calculator.db.
    """

    database_url: str
    history_key: str
    theme_key: str
    default_theme: str
    flush_delay_ms: int
    log_level: str

    @property
    def flush_delay_seconds(self) -> float:
        return self.flush_delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> "CalculatorConfig":
        # Priority: CALCULATOR_DATABASE_URL > PLATFORM_DATABASE_URL > local SQLite
        database_url = (
            _env("CALCULATOR_DATABASE_URL")
            or _env("PLATFORM_DATABASE_URL")
            or _default_database_url()
        )

        return cls(
            database_url=database_url,
            history_key=_env("CALCULATOR_HISTORY_KEY") or "calculator_history",
            theme_key=_env("CALCULATOR_THEME_KEY") or "calculator_theme",
            default_theme=_env_theme("CALCULATOR_DEFAULT_THEME", "light"),
            flush_delay_ms=_env_delay_ms("CALCULATOR_FLUSH_DELAY_MS", 500),
            log_level=(_env("CALCULATOR_LOG_LEVEL") or "INFO").upper(),
        )


_config: Optional[CalculatorConfig] = None


def get_config() -> CalculatorConfig:
    """Get the calculator configuration (cached)."""
    global _config
    if _config is None:
        _config = CalculatorConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
