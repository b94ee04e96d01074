import json
import logging
import os
from typing import Iterator, Optional

from tinydb import TinyDB, where
from tinydb.storages import Storage

from fleet_retry_controller.factories.adapters.cache_adapter import CacheAdapter
from fleet_retry_controller.utils.exceptions import CacheError
from fleet_retry_controller.utils.models import CacheEntry, validate_cache_key


class AtomicJSONStorage(Storage):
    """TinyDB storage that replaces the JSON file atomically on every write.

    TinyDB's stock JSONStorage truncates and rewrites the file in place;
    this one writes a temp file and renames it so an interrupted write
    leaves the previous document intact.
    """

    def __init__(self, path, **kwargs):
        self.path = path
        self.kwargs = kwargs

    def read(self):
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logging.warning("TinyDB cache %s is unreadable, treating it as empty: %s", self.path, e)
            return None

        if not content.strip():
            return None
        try:
            data = json.loads(content)
        except ValueError as e:
            logging.warning("TinyDB cache %s is not valid JSON, treating it as empty: %s", self.path, e)
            return None
        if not isinstance(data, dict):
            logging.warning("TinyDB cache %s has an unexpected layout, treating it as empty", self.path)
            return None
        return self._drop_malformed(data)

    def _drop_malformed(self, data):
        # TinyDB expects {table: {doc_id: {field: value}}} and fails mid-iteration otherwise
        tables = {}
        for name, table in data.items():
            if not isinstance(table, dict):
                logging.warning("TinyDB cache %s: table '%s' is not an object, dropping it", self.path, name)
                continue
            documents = {doc_id: doc for doc_id, doc in table.items()
                         if isinstance(doc, dict) and str(doc_id).isdigit()}
            if len(documents) != len(table):
                logging.warning("TinyDB cache %s: dropped %s malformed documents from table '%s'",
                                self.path, len(table) - len(documents), name)
            tables[name] = documents
        return tables

    def write(self, data):
        CacheAdapter.atomic_write(self.path, json.dumps(data, **self.kwargs))

    def close(self):
        pass


class TinyDBAdapter(CacheAdapter):
    """TinyDB adapter implementation.

    Schema Structure ('cache_entries' table):
        [
            {'key': string,
             'last_attempt': int,
             'attempts': int
            }, ...
        ]
    """

    TABLE_NAME = 'cache_entries'

    def __init__(self):
        self.db = None
        self.path = None

    def connect(self, config):
        self.path = self.prepare_path(config['path'])
        self.db = TinyDB(
            self.path,
            storage=AtomicJSONStorage,
            ensure_ascii=False
        )
        if not os.path.exists(self.path):
            # Materialise the file so an unwritable location fails here, not mid-run
            self.db.storage.write({})
            logging.info("Created TinyDB cache %s", self.path)

    def close(self):
        if self.db is not None:
            self.db.close()
            self.db = None

    def get_entries_collection(self):
        if self.db is None:
            raise CacheError("Cache adapter is not connected")
        return self.db.table(self.TABLE_NAME, cache_size=0)

    @staticmethod
    def _to_entry(document) -> CacheEntry:
        return CacheEntry(
            key=document['key'],
            last_attempt=int(document['last_attempt']),
            attempts=int(document['attempts'])
        )

    def get(self, key) -> Optional[CacheEntry]:
        result = self.get_entries_collection().search(where('key') == key)
        if not result:
            return None
        if len(result) > 1:
            logging.warning(f"Multiple cache entries found for key {key}, using the most recent.")
            result.sort(key=lambda doc: doc.get('last_attempt', 0))
        try:
            return self._to_entry(result[-1])
        except (KeyError, TypeError, ValueError) as e:
            logging.warning("Ignoring corrupt TinyDB cache entry for %s: %s", key, e)
            return None

    def upsert(self, key, timestamp, attempts) -> CacheEntry:
        validate_cache_key(key)
        entry = CacheEntry(key=key, last_attempt=int(timestamp), attempts=int(attempts))
        doc_ids = self.get_entries_collection().upsert({
            'key': entry.key,
            'last_attempt': entry.last_attempt,
            'attempts': entry.attempts
        }, where('key') == key)
        logging.debug(f"TinyDB cache entry {key} stored with doc_ids {doc_ids}")
        return entry

    def remove_keys(self, keys) -> int:
        keys = set(keys)
        if not keys:
            return 0
        removed = self.get_entries_collection().remove(where('key').one_of(list(keys)))
        return len(removed)

    def entries(self) -> Iterator[CacheEntry]:
        result = []
        for document in self.get_entries_collection().all():
            try:
                result.append(self._to_entry(document))
            except (KeyError, TypeError, ValueError) as e:
                logging.warning("Ignoring corrupt TinyDB cache document %s: %s", document.doc_id, e)
        return iter(result)
