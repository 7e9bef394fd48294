import datetime
import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(log_dir: Optional[Path] = None, level: str = "INFO") -> None:
    """Console logging plus a daily ``app-YYYY-MM-DD.log`` under ``log_dir``."""
    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root.addHandler(console)

    if log_dir is None:
        return

    log_file = Path(log_dir) / f"app-{datetime.date.today().isoformat()}.log"
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        print(f"Failed to open log file {log_file}: {e}", file=sys.stderr)
        return

    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)
