"""
JSON file persistence for the application state.

The store is the key-value persistence collaborator: it loads the whole
AppState on start and writes it back whenever the auto-save fires.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from mindmap_core.models import AppState


logger = logging.getLogger(__name__)


class JsonFileStore:
    """Loads and saves an AppState as one JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> AppState:
        """
        Load the saved state.

        A missing file yields a fresh state. A corrupt file is logged and
        also yields a fresh state; it is overwritten by the next save.
        """
        if not self._path.exists():
            return AppState()

        try:
            with open(self._path, 'r') as f:
                data = json.load(f)
            return AppState.from_json_dict(data)
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.error("Could not load state from %s: %s", self._path, e)
            return AppState()

    def save(self, state: AppState) -> Path:
        """Serialize and write the state."""
        return self.write(state.to_json_dict())

    def write(self, data: dict) -> Path:
        """
        Write an already serialized state atomically (temp file, then replace).

        Safe to call from a worker thread: it only touches `data` and the file.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self._path)

        logger.info("Saved %d documents to %s", len(data.get("documents", [])), self._path)
        return self._path
