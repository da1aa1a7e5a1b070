"""Local storage for generation history."""

from imagestudio.storage.history import HistoryRecord, HistoryRecorder, HistoryStore

__all__ = ["HistoryRecord", "HistoryRecorder", "HistoryStore"]
