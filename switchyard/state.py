"""Durable per-actor state — last-write-wins key/value snapshots."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Single-writer snapshot storage for one actor."""

    def get(self) -> dict[str, Any] | None: ...

    def set(self, state: dict[str, Any]) -> None: ...


class InMemoryStateStore:
    """Keeps the snapshot in process memory."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._state = json.loads(json.dumps(initial)) if initial is not None else None

    def get(self) -> dict[str, Any] | None:
        if self._state is None:
            return None
        return json.loads(json.dumps(self._state))

    def set(self, state: dict[str, Any]) -> None:
        self._state = json.loads(json.dumps(state, default=str))


class JsonFileStateStore:
    """Persists the snapshot to ``<directory>/<key>.json``.

    Writes go to a temp file in the same directory and are moved into
    place, so readers never see a half-written snapshot.
    """

    def __init__(self, directory: str | Path, key: str) -> None:
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def get(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring corrupt state file %s", self.path)
            return None
        return data if isinstance(data, dict) else None

    def set(self, state: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
