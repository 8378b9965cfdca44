"""Calculation history, most-recent-first, persisted as one JSON blob.

Appends land in memory immediately; the durable write is debounced so a
burst of calculations costs a single store write. Every write carries the
whole list, so superseding a pending write never drops entries.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from calcpad.debounce import Debouncer
from calcpad.storage import PERSISTENCE_ERRORS, KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "calculator_history"


def generate_entry_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    expression: str
    result: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "expression": self.expression,
            "result": self.result,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        """Build from a stored record; raises KeyError/ValueError if malformed."""
        return cls(
            id=str(data["id"]),
            expression=str(data["expression"]),
            result=str(data["result"]),
            timestamp=_parse_timestamp(data["timestamp"]),
        )


def encode_history(entries: List[HistoryEntry]) -> str:
    return json.dumps([e.to_dict() for e in entries], ensure_ascii=False)


def decode_history(raw: Optional[str]) -> List[HistoryEntry]:
    """Decode a stored blob. Unusable records are skipped with a warning."""
    if not raw:
        return []
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("history blob is not a list")

    entries: List[HistoryEntry] = []
    for item in data:
        try:
            entries.append(HistoryEntry.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed history record %r: %s", item, exc)
    return entries


class HistoryStore:
    """Ordered calculation history on top of a key-value store.

    ``kv=None`` keeps history in memory only.
    """

    def __init__(
        self,
        kv: Optional[KeyValueStore] = None,
        *,
        key: str = HISTORY_KEY,
        flush_delay: float = 0.5,
    ) -> None:
        self.kv = kv
        self.key = key
        self._entries: List[HistoryEntry] = []
        self._lock = threading.Lock()
        # Serialises store writes against clear_all.
        self._write_lock = threading.Lock()
        # Bumped per append; _saved_version is the last one the store holds.
        self._version = 0
        self._saved_version = 0
        self._debouncer = Debouncer(flush_delay, self._write)

    @property
    def entries(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def flush_pending(self) -> bool:
        return self._debouncer.pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def load_all(self) -> List[HistoryEntry]:
        """Replace in-memory history with the persisted list.

        A missing, unreadable or corrupt blob yields an empty history.
        Entries whose write failed are kept ahead of the loaded ones.
        """
        if self.kv is None:
            return self.entries

        # Anything not yet written would be lost by the reload.
        self._debouncer.flush()

        try:
            loaded = decode_history(self.kv.get(self.key))
        except PERSISTENCE_ERRORS as exc:
            logger.warning("Could not load history from %r: %s", self.key, exc)
            loaded = []

        with self._lock:
            if self._version != self._saved_version:
                known = {e.id for e in self._entries}
                loaded = self._entries + [e for e in loaded if e.id not in known]
            self._entries = loaded
        logger.debug("Loaded %d history entries", len(loaded))
        return list(loaded)

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.insert(0, entry)
            self._version += 1
        self._debouncer.schedule()

    def clear_all(self) -> None:
        self._debouncer.cancel()
        # Waits out a write already in flight so it cannot land after the delete.
        with self._write_lock:
            with self._lock:
                self._entries = []
                self._saved_version = self._version
            if self.kv is None:
                return
            try:
                self.kv.delete(self.key)
            except PERSISTENCE_ERRORS as exc:
                logger.error("Could not clear history %r: %s", self.key, exc)

    def flush(self) -> bool:
        """Write pending history now; False when nothing was pending."""
        return self._debouncer.flush()

    def close(self) -> None:
        self.flush()

    def to_records(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]

    def _write(self) -> None:
        if self.kv is None:
            return
        with self._write_lock:
            with self._lock:
                snapshot = list(self._entries)
                version = self._version
            try:
                self.kv.set(self.key, encode_history(snapshot))
            except PERSISTENCE_ERRORS as exc:
                logger.error("Could not save history %r: %s", self.key, exc)
                return
            with self._lock:
                self._saved_version = version
        logger.debug("Flushed %d history entries", len(snapshot))
