"""Persistent storage for session history."""

from .history_store import HistoryStore, record_from_dict, record_to_dict

__all__ = ["HistoryStore", "record_from_dict", "record_to_dict"]
