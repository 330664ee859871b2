"""User progress persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import os
import tempfile
from datetime import date
from pathlib import Path

import structlog

from fluency_trainer.config import Settings, get_settings
from fluency_trainer.models.progress import UserProgress
from fluency_trainer.progress import ledger

logger = structlog.get_logger()


class ProgressStore:
    """A single named progress record on disk.

    Missing or unreadable data always loads as fresh zero progress.

    Args:
        path: JSON file holding the serialized UserProgress.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock_path = path.with_name(path.name + ".lock")

    def load(self) -> UserProgress:
        if not self.path.exists():
            return UserProgress()
        try:
            with open(self.path, encoding="utf-8", errors="strict") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                try:
                    raw = f.read()
                except UnicodeDecodeError:
                    raw = None
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)
        except OSError as e:
            logger.warning("progress_record_unreadable", path=str(self.path), error=str(e))
            return UserProgress()
        if not raw:
            logger.warning("progress_record_unreadable", path=str(self.path))
            return UserProgress()
        try:
            return UserProgress.model_validate_json(raw)
        except ValueError:
            logger.warning("progress_record_corrupt", path=str(self.path))
            return UserProgress()

    def save(self, progress: UserProgress) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", dir=self.path.parent, delete=False, suffix=".json", encoding="utf-8"
        ) as tmp:
            tmp.write(progress.model_dump_json(indent=2))
        os.replace(tmp.name, self.path)

    def record_session(
        self,
        phrases_completed: int,
        seconds_elapsed: int,
        mode: str,
        today: date | None = None,
    ) -> UserProgress:
        """Load, apply one completed session and save, under an exclusive lock."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "w") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            updated = ledger.record_session(
                self.load(), phrases_completed, seconds_elapsed, mode, today=today
            )
            self.save(updated)
        return updated


def get_progress_store(settings: Settings | None = None) -> ProgressStore:
    settings = settings or get_settings()
    return ProgressStore(settings.progress_path)
