from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

STORE_FILE_NAME = "clipboard-history.json"
DEFAULT_HISTORY_LIMIT = 50


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_limit(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return DEFAULT_HISTORY_LIMIT
    if value.strip().lower() in {"0", "none", "unlimited"}:
        return None
    limit = int(value)
    if limit < 0:
        raise ValueError(f"CLIPKEEP_HISTORY_LIMIT must be >= 0, got {limit}")
    return limit


def default_data_dir() -> Path:
    return Path.home() / ".clipkeep"


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path = field(default_factory=default_data_dir)
    poll_interval: float = 1.0
    save_debounce: float = 1.0
    history_limit: Optional[int] = DEFAULT_HISTORY_LIMIT
    log_level: str = "INFO"
    dev: bool = False

    @property
    def store_file(self) -> Path:
        return self.data_dir / STORE_FILE_NAME

    @property
    def log_dir(self) -> Path:
        return self.data_dir / ("logs-dev" if self.dev else "logs")

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "AppConfig":
        if env_path is not None:
            if env_path.exists():
                load_dotenv(dotenv_path=env_path)
        else:
            load_dotenv()

        data_dir_raw = os.getenv("CLIPKEEP_DATA_DIR")
        poll_raw = os.getenv("CLIPKEEP_POLL_INTERVAL")
        debounce_raw = os.getenv("CLIPKEEP_SAVE_DEBOUNCE")

        return cls(
            data_dir=Path(data_dir_raw).expanduser() if data_dir_raw else default_data_dir(),
            poll_interval=float(poll_raw) if poll_raw else cls.poll_interval,
            save_debounce=float(debounce_raw) if debounce_raw else cls.save_debounce,
            history_limit=_to_limit(os.getenv("CLIPKEEP_HISTORY_LIMIT")),
            log_level=os.getenv("CLIPKEEP_LOG_LEVEL", cls.log_level).upper(),
            dev=_to_bool(os.getenv("CLIPKEEP_DEV")),
        )

    def with_overrides(self, **overrides) -> "AppConfig":
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)
