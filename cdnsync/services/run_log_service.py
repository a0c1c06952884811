"""Per-pass log files and the excerpt attached to notifications."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_FENCES_LEN = len("``````")
_ELLIPSIS = "..."


class RunLog:
    """Writes each pass to a fresh ``log_<timestamp>.log`` file under ``log_dir``."""

    def __init__(self, log_dir: Path) -> None:
        self.log_dir = log_dir
        self.current: Path | None = None
        self._handler: logging.FileHandler | None = None

    def start(self, now: datetime | None = None) -> Path:
        """Close the previous pass's file and start a new one on the root logger."""
        self.close()
        stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.log_dir / f"log_{stamp}.log"
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)
        self._handler = handler
        self.current = path
        return path

    def close(self) -> None:
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler.close()
        self._handler = None

    def excerpt(self, limit: int = 1024) -> str:
        """Return the tail of the current log, sized to fit ``limit`` once fenced."""
        if self.current is None:
            return ""
        if self._handler is not None:
            self._handler.flush()
        try:
            text = self.current.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", self.current, exc)
            return ""
        if len(text) + _FENCES_LEN <= limit:
            return text
        keep = max(limit - _FENCES_LEN - len(_ELLIPSIS), 0)
        return _ELLIPSIS + text[len(text) - keep :]
