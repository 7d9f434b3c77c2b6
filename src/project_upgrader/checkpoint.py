"""Durable upgrade checkpoints.

An upgrade is several non-atomic steps. The checkpoint records which steps
finished so an interrupted run resumes where it stopped, with the same target
source, instead of redoing work that is not safe to redo.
"""

import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field
from tinydb import TinyDB
from tinydb.storages import MemoryStorage
from tinydb.table import Table

from .constants import (
    CHECKPOINT_DOC_ID,
    CHECKPOINT_STATUS_COMPLETED,
    CHECKPOINT_STATUS_IN_PROGRESS,
    DB_TABLE_CHECKPOINTS,
    ProjectSchemaVersion,
    UpgradeStep,
)
from .utils import ensure_dir

logger = logging.getLogger(__name__)


class Checkpoint(BaseModel):
    """Progress of one upgrade run."""

    target_source: str
    from_version: ProjectSchemaVersion
    status: str = CHECKPOINT_STATUS_IN_PROGRESS
    completed_steps: list[UpgradeStep] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def in_progress(self) -> bool:
        return self.status == CHECKPOINT_STATUS_IN_PROGRESS

    def is_done(self, step: UpgradeStep) -> bool:
        """Return True if step already completed in this run."""
        return step in self.completed_steps


class CheckpointStore:
    """Keeps the checkpoint of the current upgrade in TinyDB.

    The checkpoint is a single document with a fixed doc_id so every update
    replaces the same record. A file-backed store only creates its file when a
    checkpoint is first written, so read-only commands leave the project alone.
    """

    def __init__(self, path: Path | None = None):
        """
        Open the checkpoint database.

        Args:
            path: JSON file to persist to; None keeps checkpoints in memory
        """
        self.path = path
        self.db: TinyDB | None = None
        if path is None:
            self.db = TinyDB(storage=MemoryStorage)

    def _table(self, create: bool = False) -> Table | None:
        if self.db is None:
            if self.path is None or (not create and not self.path.exists()):
                return None
            ensure_dir(self.path.parent)
            self.db = TinyDB(self.path)
        return self.db.table(DB_TABLE_CHECKPOINTS)

    def close(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None

    def load(self) -> Checkpoint | None:
        """Return the stored checkpoint, if any."""
        table = self._table()
        if table is None:
            return None
        doc = table.get(doc_id=CHECKPOINT_DOC_ID)
        if not doc or isinstance(doc, list):
            return None
        return Checkpoint.model_validate(dict(doc))

    def current(self) -> Checkpoint | None:
        """Return the stored checkpoint if its upgrade is still in progress."""
        checkpoint = self.load()
        if checkpoint is not None and checkpoint.in_progress:
            return checkpoint
        return None

    def _save(self, checkpoint: Checkpoint) -> None:
        table = self._table(create=True)
        assert table is not None
        checkpoint.updated_at = datetime.now()
        data = checkpoint.model_dump(mode="json")
        if table.get(doc_id=CHECKPOINT_DOC_ID):
            table.update(data, doc_ids=[CHECKPOINT_DOC_ID])
        else:
            table.insert(data)

    def start(self, target_source: str, from_version: ProjectSchemaVersion) -> Checkpoint:
        """Open a fresh checkpoint, replacing any finished one."""
        table = self._table(create=True)
        assert table is not None
        table.truncate()
        checkpoint = Checkpoint(target_source=target_source, from_version=from_version)
        self._save(checkpoint)
        logger.debug("checkpoint opened for source %s", target_source)
        return checkpoint

    def mark_done(self, checkpoint: Checkpoint, step: UpgradeStep) -> None:
        """Record a completed step."""
        if step not in checkpoint.completed_steps:
            checkpoint.completed_steps.append(step)
        self._save(checkpoint)

    def complete(self, checkpoint: Checkpoint) -> None:
        """Mark the upgrade as finished."""
        checkpoint.status = CHECKPOINT_STATUS_COMPLETED
        self._save(checkpoint)

    def discard(self) -> None:
        """Forget any checkpoint."""
        table = self._table()
        if table is not None:
            table.truncate()
