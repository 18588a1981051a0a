from __future__ import annotations
from pathlib import Path
import json
import os
import uuid

from loguru import logger

from holdings_service.errors import PersistenceError
from holdings_service.ranking.models import Snapshot


class JsonSnapshotStore:
    """Last-known-good snapshot on disk, written as indented JSON."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def save(self, snapshot: Snapshot) -> None:
        # one temp file per write so overlapping saves never share it
        tmp = self.path.with_name(f"{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write snapshot to {self.path}: {e}", details={"path": str(self.path)}) from e
        logger.info("Data saved to {} with {} items", self.path, snapshot.item_count)

    def load(self) -> Snapshot:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise PersistenceError(f"Could not read snapshot from {self.path}: {e}", details={"path": str(self.path)}) from e
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Snapshot file {self.path} is not valid JSON: {e}", details={"path": str(self.path)}) from e
        try:
            return Snapshot.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Snapshot file {self.path} is malformed: {e}", details={"path": str(self.path)}) from e
