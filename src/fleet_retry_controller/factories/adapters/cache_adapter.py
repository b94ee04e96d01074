import logging
import os
import stat
import tempfile
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from fleet_retry_controller.utils.core import age_expired
from fleet_retry_controller.utils.exceptions import CacheError
from fleet_retry_controller.utils.models import CacheEntry


class CacheAdapter(ABC):
    """Abstract base class for remediation cache adapters.

    A cache adapter is a persistent key -> (last attempt, attempt count)
    map with one entry per key. Adapters are single-writer: running two
    controllers against the same store at once is not supported.
    """

    path = None

    @abstractmethod
    def connect(self, config):
        """Open or create the backing store described by config['path']."""
        pass

    @abstractmethod
    def close(self):
        """Release the backing store."""
        pass

    @abstractmethod
    def get(self, key) -> Optional[CacheEntry]:
        """Return the entry for key, or None if there is none."""
        pass

    @abstractmethod
    def upsert(self, key, timestamp, attempts) -> CacheEntry:
        """Replace the entry for key and persist the store."""
        pass

    @abstractmethod
    def remove_keys(self, keys) -> int:
        """Remove the given keys and persist the store; return the count removed."""
        pass

    @abstractmethod
    def entries(self) -> Iterator[CacheEntry]:
        """Iterate over all entries in store order."""
        pass

    def __len__(self):
        return sum(1 for _ in self.entries())

    def prune(self, now, max_age_seconds) -> int:
        """
        Remove entries whose last attempt is older than max_age_seconds.
        Concrete implementation that subclasses can override or call via super().

        Pruning is purely by absolute age and ignores backoff state.
        """
        stale = [entry.key for entry in self.entries()
                 if age_expired(entry.last_attempt, max_age_seconds, epoch=now)]
        if not stale:
            logging.debug("Cache prune: nothing older than %ss", max_age_seconds)
            return 0

        removed = self.remove_keys(stale)
        logging.info("Cache prune: removed %s entries older than %ss", removed, max_age_seconds)
        return removed

    # Helpers shared by the file based adapters

    @staticmethod
    def prepare_path(path):
        """Expand the store path, create its parent directory and check it is writable.

        Raises:
            CacheError: If the location cannot be created or written
        """
        path = os.path.abspath(os.path.expanduser(str(path)))
        parent = os.path.dirname(path)
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {parent}: {e}") from e

        if not os.access(parent, os.W_OK | os.X_OK):
            raise CacheError(f"Cache directory is not writable: {parent}")
        if os.path.exists(path) and not os.access(path, os.W_OK):
            raise CacheError(f"Cache file is not writable: {path}")
        return path

    @staticmethod
    def atomic_write(path, text):
        """Write text to a temp file beside path, fsync it, then rename it over path.

        Readers see either the old or the new file, never a truncated one.
        An existing file keeps its permission bits; a new one is created 0600.
        The temp file is removed on any failure, interrupts included.

        Raises:
            CacheError: If the write or the rename fails
        """
        directory = os.path.dirname(path) or '.'
        fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as tmp:
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            if os.path.exists(path):
                os.chmod(tmp_path, stat.S_IMODE(os.stat(path).st_mode))
            os.replace(tmp_path, path)
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise CacheError(f"Failed to write cache file {path}: {e}") from e
            raise
