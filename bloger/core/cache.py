"""
Local history of recently shown articles.
"""
import json
import logging
import sqlite3
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from bloger.core.article import Article, HistoryEntry
from bloger.core.errors import StorageQuotaExceeded

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "bloger_history"
MAX_ENTRIES = 3
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class SlotStore:
    """
    Small key/value store of named text slots backed by SQLite.

    Writes larger than ``quota_bytes`` are refused with StorageQuotaExceeded,
    mirroring the quota of browser-local storage.
    """
    def __init__(self, db_path: Union[str, Path], quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.db_path = Path(db_path)
        self.quota_bytes = quota_bytes
        self._init_db()

    def _init_db(self):
        """Initialize the SQLite database holding the slots."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS slots (
                    name TEXT PRIMARY KEY,
                    value TEXT,
                    updated DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def read(self, name: str) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("SELECT value FROM slots WHERE name = ?", (name,))
            result = cursor.fetchone()
            return result[0] if result else None

    def write(self, name: str, value: str):
        """
        Replace the contents of a slot.

        Raises:
            StorageQuotaExceeded: if the value is larger than the quota
        """
        size = len(value.encode("utf-8"))
        if size > self.quota_bytes:
            raise StorageQuotaExceeded(
                f"Slot '{name}' needs {size} bytes, quota is {self.quota_bytes}"
            )
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO slots (name, value, updated)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (name, value)
            )


class HistoryCache:
    """
    Bounded, most-recent-first list of previously shown articles, keyed by
    title and persisted as one JSON list in a single slot.

    History is a convenience: storage failures are logged and swallowed.
    """
    def __init__(self, store: SlotStore, slot: str = DEFAULT_SLOT, max_entries: int = MAX_ENTRIES):
        self.store = store
        self.slot = slot
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._last_id = 0

    def _load_unlocked(self) -> List[HistoryEntry]:
        try:
            raw = self.store.read(self.slot)
        except sqlite3.Error as e:
            logger.warning(f"Could not read history: {e}")
            return []
        if not raw:
            return []
        try:
            return [HistoryEntry.from_dict(item) for item in json.loads(raw)]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Ignoring corrupt history slot '{self.slot}': {e}")
            return []

    def _save_unlocked(self, entries: List[HistoryEntry]):
        self.store.write(self.slot, json.dumps([e.to_dict() for e in entries], ensure_ascii=False))

    def _save_with_fallback_unlocked(self, entries: List[HistoryEntry], index: int) -> None:
        """
        Persist ``entries``; on quota failure retry once with the thumbnail
        of ``entries[index]`` removed.
        """
        try:
            self._save_unlocked(entries)
            return
        except StorageQuotaExceeded as e:
            logger.warning(f"History write exceeded quota, retrying without thumbnail: {e}")
        except sqlite3.Error as e:
            logger.warning(f"Could not write history: {e}")
            return

        entries[index].thumbnail = None
        try:
            self._save_unlocked(entries)
        except (StorageQuotaExceeded, sqlite3.Error) as e:
            logger.warning(f"Could not write history without thumbnail: {e}")

    def _next_id(self) -> str:
        self._last_id = max(time.time_ns(), self._last_id + 1)
        return str(self._last_id)

    def record_if_absent(self, article: Article, category: str,
                         thumbnail: Optional[str] = None) -> Optional[HistoryEntry]:
        """
        Add an article to the front of the history unless its title is
        already there, keeping only the most recent ``max_entries``.

        Args:
            article: The article being shown
            category: Its category label
            thumbnail: Optional base64 image for the entry

        Returns:
            The new entry, or None if the title was already recorded
        """
        with self._lock:
            entries = self._load_unlocked()
            if any(e.title == article.title for e in entries):
                return None

            entry = HistoryEntry(
                id=self._next_id(),
                title=article.title,
                category=category,
                date=datetime.now().strftime("%x"),
                thumbnail=thumbnail,
            )
            entries.insert(0, entry)
            del entries[self.max_entries:]

            self._save_with_fallback_unlocked(entries, 0)
            logger.debug(f"Recorded '{article.title}' in history")
            return entry

    def update_thumbnail(self, title: str, thumbnail: Optional[str]) -> bool:
        """
        Replace the thumbnail of the entry with ``title``.

        Returns:
            True if an entry was found
        """
        with self._lock:
            entries = self._load_unlocked()
            for i, entry in enumerate(entries):
                if entry.title == title:
                    entry.thumbnail = thumbnail
                    self._save_with_fallback_unlocked(entries, i)
                    return True
            return False

    def list(self, excluding_title: Optional[str] = None) -> List[HistoryEntry]:
        """
        Stored entries, most recent first, minus the one titled ``excluding_title``.
        """
        with self._lock:
            entries = self._load_unlocked()
        return [e for e in entries if excluding_title is None or e.title != excluding_title]
