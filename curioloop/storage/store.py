"""
Local persistence for learning paths and daily stats.

Two JSON documents live in the data directory (default ~/.curioloop/):
- paths.json        - list of LearningPath
- daily_stats.json  - one DailyStats

Reads are tolerant: a missing or corrupt document falls back to defaults and
individual path entries that fail validation are skipped. Writes replace the
whole document through a temp file + os.replace.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from curioloop.core.errors import StorageError
from curioloop.core.models import DailyStats, LearningPath
from curioloop.progression.streaks import apply_day_rollover

PATHS_FILE = "paths.json"
STATS_FILE = "daily_stats.json"


class LearningStore:
    """
    Reads and writes the CurioLoop data directory.

    The store never holds state of its own; the engine passes in the full
    collection on every save.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()

    @property
    def paths_file(self) -> Path:
        return self.data_dir / PATHS_FILE

    @property
    def stats_file(self) -> Path:
        return self.data_dir / STATS_FILE

    # =========================================================================
    # Load
    # =========================================================================

    def load(self, now: datetime) -> tuple[list[LearningPath], DailyStats, bool]:
        """
        Load paths and stats, applying the day rollover to stats.

        Returns:
            (paths, stats, stats_changed) - stats_changed is True when the
            stats were defaulted or rolled over and should be written back
        """
        paths = self.load_paths()

        stats = self.load_stats()
        defaulted = stats is None
        if stats is None:
            stats = DailyStats.fresh(now)

        stats, rolled_over = apply_day_rollover(stats, now)
        if rolled_over:
            logger.info(f"New day: streak is now {stats.streak_days}")

        return paths, stats, defaulted or rolled_over

    def load_paths(self) -> list[LearningPath]:
        data = self._read(self.paths_file)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning(f"{self.paths_file} is not a list, ignoring it")
            return []

        paths: list[LearningPath] = []
        for entry in data:
            try:
                paths.append(LearningPath.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable learning path: {e.error_count()} error(s)")
        return paths

    def load_stats(self) -> DailyStats | None:
        data = self._read(self.stats_file)
        if data is None:
            return None
        try:
            return DailyStats.model_validate(data)
        except ValidationError:
            logger.warning(f"{self.stats_file} is malformed, using defaults")
            return None

    def _read(self, filepath: Path) -> Any:
        if not filepath.exists():
            return None
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Could not read {filepath}: {e}")
            return None

    # =========================================================================
    # Save
    # =========================================================================

    def save_paths(self, paths: list[LearningPath]) -> Path:
        """Write the full path collection."""
        payload = [p.model_dump(mode="json", by_alias=True) for p in paths]
        return self._write(self.paths_file, payload)

    def save_stats(self, stats: DailyStats) -> Path:
        """Write the daily stats document."""
        return self._write(self.stats_file, stats.model_dump(mode="json", by_alias=True))

    def _write(self, filepath: Path, payload: Any) -> Path:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{filepath.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_name, filepath)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {filepath}: {e}") from e

        logger.debug(f"Saved {filepath}")
        return filepath

    def reset(self) -> int:
        """Delete both documents. Returns the number of files removed."""
        removed = 0
        for filepath in (self.paths_file, self.stats_file):
            if filepath.exists():
                try:
                    filepath.unlink()
                except OSError as e:
                    raise StorageError(f"Could not delete {filepath}: {e}") from e
                removed += 1
        return removed
