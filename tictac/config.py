"""
Configuration - Environment-driven settings.

Every value has a default so the engine runs with no environment at all.

Environment variables:
    TICTAC_ENV                 development | production
    TICTAC_DATA_DIR            Directory for persisted records (default ~/.tictac)
    TICTAC_LOG_LEVEL           Logging level name (default INFO)
    TICTAC_IDENTITY            Ledger identity used by the local client
    TICTAC_LIST_DEBOUNCE_MS    Lobby notification debounce window (default 1000)
    TICTAC_LIST_FETCH_CAP      Max session details fetched per lobby refresh (default 20)
    TICTAC_FETCH_DELAY_MS      Delay between lobby detail fetches (default 50)
    TICTAC_AI_DELAY_MS         Agent "thinking" delay in AI games (default 500)
    ALLOWED_ORIGINS            Comma-separated CORS origins (default *)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging
import os


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """
    Runtime settings.

    Durations are stored in seconds; the environment uses milliseconds.
    """
    env: str = "development"
    data_dir: Path = field(default_factory=lambda: Path.home() / ".tictac")
    log_level: str = "INFO"
    identity: str | None = None

    list_debounce: float = 1.0
    list_fetch_cap: int = 20
    fetch_delay: float = 0.05
    ai_delay: float = 0.5

    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        data_dir = os.getenv("TICTAC_DATA_DIR")
        cap = _env_int("TICTAC_LIST_FETCH_CAP", 20)
        if cap < 0:
            raise ValueError("TICTAC_LIST_FETCH_CAP must not be negative")

        return cls(
            env=os.getenv("TICTAC_ENV", "development"),
            data_dir=Path(data_dir).expanduser() if data_dir else Path.home() / ".tictac",
            log_level=os.getenv("TICTAC_LOG_LEVEL", "INFO").upper(),
            identity=os.getenv("TICTAC_IDENTITY") or None,
            list_debounce=_env_int("TICTAC_LIST_DEBOUNCE_MS", 1000) / 1000,
            list_fetch_cap=cap,
            fetch_delay=_env_int("TICTAC_FETCH_DELAY_MS", 50) / 1000,
            ai_delay=_env_int("TICTAC_AI_DELAY_MS", 500) / 1000,
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        )


def configure_logging(level: str = "INFO"):
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
