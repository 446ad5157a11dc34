from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from .config import get_settings
from .models import Project, utc_now

logger = logging.getLogger(__name__)

LEGACY_FILE = "sessions.json"
LEGACY_PROJECT = "default"


class StorageError(Exception):
    """projects.json exists but cannot be read back."""


class ProjectStore:
    """All projects in one JSON file, read and written whole on every request."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    @property
    def data_dir(self) -> Path:
        return self.path.parent

    def load(self) -> Dict[str, Project]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to load projects from %s: %s", self.path, e)
            raise StorageError(f"Failed to load projects: {e}") from e
        if not isinstance(raw, dict):
            raise StorageError("Failed to load projects: top level is not an object")
        return {slug: Project.from_dict(slug, data) for slug, data in raw.items()}

    def save(self, projects: Dict[str, Project]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = {slug: p.to_dict() for slug, p in projects.items()}
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=".projects-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    @contextmanager
    def transaction(self) -> Iterator[Dict[str, Project]]:
        """Load, hand out for mutation, and flush only if the block succeeds."""
        with self._lock:
            projects = self.load()
            yield projects
            self.save(projects)

    def migrate_legacy_sessions(self) -> bool:
        legacy = self.data_dir / LEGACY_FILE
        if not legacy.exists():
            return False
        try:
            sessions = json.loads(legacy.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read legacy sessions: {e}") from e
        if not sessions:
            return False

        with self.transaction() as projects:
            if LEGACY_PROJECT not in projects:
                projects[LEGACY_PROJECT] = Project.from_dict(
                    LEGACY_PROJECT,
                    {
                        "slug": LEGACY_PROJECT,
                        "title": "Legacy Sessions",
                        "createdAt": utc_now(),
                        "sessions": sessions,
                    },
                )
        legacy.rename(self.data_dir / (LEGACY_FILE + ".bak"))
        logger.info("Migrated %d legacy sessions to %r project.", len(sessions), LEGACY_PROJECT)
        return True


_default_store: ProjectStore | None = None


def get_store() -> ProjectStore:
    global _default_store
    if _default_store is None:
        _default_store = ProjectStore(get_settings().projects_file)
    return _default_store
