"""Unit tests for HistoryStore."""

import json
import threading
from datetime import datetime
from unittest.mock import patch

import pytest

from speechcoach.errors import StorageWriteFailure
from speechcoach.models.metrics import SpeechMetrics
from speechcoach.models.session import Rating, SessionRecord, SourceType
from speechcoach.storage.history_store import HistoryStore, record_from_dict, record_to_dict


def make_record(store: HistoryStore, title: str = "Team Meeting", **overrides) -> SessionRecord:
    fields = dict(
        id=store.next_id(),
        title=title,
        created_at=datetime(2024, 5, 18, 10, 30),
        duration_label="8:45",
        source_type=SourceType.REAL_TIME,
        transcript_text="so we shipped the release",
        rating=Rating.GOOD,
        metrics=SpeechMetrics(pace_wpm=120, clarity_percent=82, filler_words=("so",),
                              filler_count=1, sentiment_score=0.1, confidence_percent=88,
                              tone_label="Confident", word_count=5),
        feedback=("Your pronunciation is improving",),
    )
    fields.update(overrides)
    return SessionRecord(**fields)


@pytest.mark.unit
class TestHistoryStore:
    """Test cases for HistoryStore."""

    def test_initialization_creates_directory(self, temp_data_dir):
        store = HistoryStore(temp_data_dir)

        assert store.history_dir.exists()
        assert store.list() == []

    def test_list_is_most_recent_first(self, history_store):
        titles = ["Project Presentation", "Team Meeting", "Interview Practice"]
        for title in titles:
            history_store.append(make_record(history_store, title))

        assert [r.title for r in history_store.list()] == list(reversed(titles))

    def test_record_round_trips_through_disk(self, history_store):
        record = make_record(history_store)
        history_store.append(record)

        assert history_store.get(record.id) == record

    def test_records_survive_restart(self, temp_data_dir):
        store = HistoryStore(temp_data_dir)
        record = make_record(store)
        store.append(record)

        reopened = HistoryStore(temp_data_dir)

        assert reopened.list() == [record]
        assert reopened.next_id() > record.id

    def test_delete_keeps_order_of_remaining(self, history_store):
        records = [make_record(history_store, f"Session {i}") for i in range(5)]
        for record in records:
            history_store.append(record)

        assert history_store.delete(records[2].id) is True

        remaining = history_store.list()
        assert [r.id for r in remaining] == [r.id for r in reversed(records) if r.id != records[2].id]

    def test_delete_unknown_id(self, history_store):
        assert history_store.delete(12345) is False

    def test_ids_strictly_increase(self, history_store):
        ids = [history_store.next_id() for _ in range(100)]

        assert ids == sorted(set(ids))

    def test_concurrent_appends_are_all_kept(self, history_store):
        def worker(n):
            history_store.append(make_record(history_store, f"Worker {n}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(history_store.list()) == 10

    def test_write_failure_raises_storage_error(self, history_store):
        record = make_record(history_store)

        with patch("speechcoach.storage.history_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteFailure):
                history_store.append(record)

        assert history_store.list() == []
        assert list(history_store.history_dir.glob("*.tmp")) == []

    def test_corrupt_file_is_skipped(self, history_store):
        record = make_record(history_store)
        history_store.append(record)
        (history_store.history_dir / "1.json").write_text("{not json")

        assert history_store.list() == [record]

    def test_serialized_layout(self, history_store):
        record = make_record(history_store)

        data = record_to_dict(record)

        assert data["source_type"] == "RealTime"
        assert data["rating"] == "Good"
        assert data["metrics"]["filler_words"] == ["so"]
        json.dumps(data)
        assert record_from_dict(data) == record
