"""Durable storage of finished session records."""

import json
import logging
import os
import threading
import time
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import StorageWriteFailure
from ..models.metrics import SpeechMetrics
from ..models.session import Rating, SessionRecord, SourceType

logger = logging.getLogger(__name__)


def record_to_dict(record: SessionRecord) -> Dict[str, Any]:
    data = asdict(record)
    data["created_at"] = record.created_at.isoformat()
    data["source_type"] = record.source_type.value
    data["rating"] = record.rating.value
    data["feedback"] = list(record.feedback)
    data["metrics"]["filler_words"] = list(record.metrics.filler_words)
    return data


def record_from_dict(data: Dict[str, Any]) -> SessionRecord:
    metrics = dict(data["metrics"])
    metrics["filler_words"] = tuple(metrics.get("filler_words", ()))
    return SessionRecord(
        id=int(data["id"]),
        title=data["title"],
        created_at=datetime.fromisoformat(data["created_at"]),
        duration_label=data["duration_label"],
        source_type=SourceType(data["source_type"]),
        transcript_text=data["transcript_text"],
        rating=Rating(data["rating"]),
        metrics=SpeechMetrics(**metrics),
        feedback=tuple(data.get("feedback", ())),
    )


class HistoryStore:
    """Append/list/delete store with one JSON document per session record.

    Writes go through a lock so that ``append`` and ``delete`` never
    interleave. Each document is written to a temporary file and moved into
    place, so a crash never leaves a half-written record behind.
    """

    def __init__(self, data_dir: str = "./data"):
        """Initialize the store.

        Args:
            data_dir: Base directory; records live in its ``history`` subdirectory
        """
        self.data_dir = Path(data_dir)
        self.history_dir = self.data_dir / "history"
        self.history_dir.mkdir(parents=True, exist_ok=True)
        self.lock = threading.Lock()
        self.last_id = max(self._record_ids(), default=0)
        logger.info(f"HistoryStore initialized at {self.history_dir}")

    def _record_ids(self) -> List[int]:
        ids = []
        for path in self.history_dir.glob("*.json"):
            if path.stem.isdigit():
                ids.append(int(path.stem))
        return ids

    def _record_path(self, record_id: int) -> Path:
        return self.history_dir / f"{record_id}.json"

    def next_id(self) -> int:
        """Allocate a unique, increasing id based on the current time in milliseconds."""
        with self.lock:
            self.last_id = max(int(time.time() * 1000), self.last_id + 1)
            return self.last_id

    def append(self, record: SessionRecord) -> None:
        """Persist a record.

        Raises:
            StorageWriteFailure: the record could not be written
        """
        path = self._record_path(record.id)
        tmp_path = path.with_suffix(".json.tmp")
        with self.lock:
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(record_to_dict(record), f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error saving session record {record.id}: {e}")
                if tmp_path.exists():
                    tmp_path.unlink()
                raise StorageWriteFailure(f"Could not save session record {record.id}: {e}") from e
            self.last_id = max(self.last_id, record.id)
        logger.info(f"Session record saved: {path}")

    def get(self, record_id: int) -> Optional[SessionRecord]:
        path = self._record_path(record_id)
        if not path.exists():
            return None
        return self._load(path)

    def list(self) -> List[SessionRecord]:
        """Return all records, most recent first."""
        records = []
        for record_id in sorted(self._record_ids(), reverse=True):
            record = self._load(self._record_path(record_id))
            if record is not None:
                records.append(record)
        return records

    def delete(self, record_id: int) -> bool:
        """Delete one record.

        Returns:
            True if a record was removed, False if no record had that id

        Raises:
            StorageWriteFailure: the record exists but could not be removed
        """
        path = self._record_path(record_id)
        with self.lock:
            if not path.exists():
                logger.warning(f"No session record with id {record_id}")
                return False
            try:
                path.unlink()
            except OSError as e:
                raise StorageWriteFailure(f"Could not delete session record {record_id}: {e}") from e
        logger.info(f"Session record deleted: {record_id}")
        return True

    def _load(self, path: Path) -> Optional[SessionRecord]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return record_from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading session record {path}: {e}")
            return None
