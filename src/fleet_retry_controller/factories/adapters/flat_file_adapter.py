import logging
import os
from typing import Dict, Iterator, Optional

from fleet_retry_controller.factories.adapters.cache_adapter import CacheAdapter
from fleet_retry_controller.utils.exceptions import CacheCorruptionError, CacheError
from fleet_retry_controller.utils.models import CACHE_FIELD_DELIMITER, CacheEntry, validate_cache_key


def parse_line(line) -> CacheEntry:
    """Parse one 'key|last_attempt|attempts' record.

    Raises:
        CacheCorruptionError: If the record does not have that shape
    """
    fields = line.split(CACHE_FIELD_DELIMITER)
    if len(fields) != 3 or not fields[0]:
        raise CacheCorruptionError(f"Expected 3 '{CACHE_FIELD_DELIMITER}' separated fields: {line!r}")
    key, last_attempt, attempts = fields
    try:
        return CacheEntry(key=key, last_attempt=int(last_attempt), attempts=int(attempts))
    except ValueError as e:
        raise CacheCorruptionError(f"Non-numeric timestamp or attempt count: {line!r}") from e


def format_line(entry: CacheEntry) -> str:
    return f"{entry.key}{CACHE_FIELD_DELIMITER}{entry.last_attempt}{CACHE_FIELD_DELIMITER}{entry.attempts}"


class FlatFileAdapter(CacheAdapter):
    """Line-oriented cache file adapter.

    Schema Structure (one record per line):
        key|last_attempt_unix_time|attempt_count

    The whole file is held in an ordered map and rewritten atomically on
    every upsert or prune. Records that are not touched are written back
    exactly as they were read.
    """

    def __init__(self):
        self.path = None
        self._entries: Dict[str, CacheEntry] = {}
        self._lines: Dict[str, str] = {}

    def connect(self, config):
        self.path = self.prepare_path(config['path'])
        if not os.path.exists(self.path):
            self.atomic_write(self.path, '')
            logging.info("Created cache file %s", self.path)
        self._load()

    def close(self):
        self._entries = {}
        self._lines = {}

    def _load(self):
        self._entries = {}
        self._lines = {}
        try:
            with open(self.path, 'r', encoding='utf-8', newline='') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logging.warning("Cache file %s is unreadable, treating it as empty: %s", self.path, e)
            return

        for number, raw in enumerate(content.splitlines(), start=1):
            if not raw.strip():
                continue
            try:
                entry = parse_line(raw)
            except CacheCorruptionError as e:
                logging.warning("Ignoring corrupt cache record at %s:%s: %s", self.path, number, e)
                continue
            if entry.key in self._entries:
                # Legacy files may repeat a key; the later record is the newer attempt
                del self._entries[entry.key]
                del self._lines[entry.key]
            self._entries[entry.key] = entry
            self._lines[entry.key] = raw

        logging.debug("Loaded %s cache entries from %s", len(self._entries), self.path)

    def _persist(self):
        if self.path is None:
            raise CacheError("Cache adapter is not connected")
        text = ''.join(f"{line}\n" for line in self._lines.values())
        self.atomic_write(self.path, text)

    def get(self, key) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def upsert(self, key, timestamp, attempts) -> CacheEntry:
        validate_cache_key(key)
        entry = CacheEntry(key=key, last_attempt=int(timestamp), attempts=int(attempts))

        # Replacing moves the key to the end, like the remove-then-append of the line format
        self._entries.pop(key, None)
        self._lines.pop(key, None)
        self._entries[key] = entry
        self._lines[key] = format_line(entry)
        self._persist()
        logging.debug("Cache upsert %s: last_attempt=%s attempts=%s", key, entry.last_attempt, entry.attempts)
        return entry

    def remove_keys(self, keys) -> int:
        removed = 0
        for key in keys:
            if key in self._entries:
                del self._entries[key]
                del self._lines[key]
                removed += 1
        if removed:
            self._persist()
        return removed

    def entries(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def __len__(self):
        return len(self._entries)
