"""Cache store adapters."""

from fleet_retry_controller.factories.adapters.cache_adapter import CacheAdapter
from fleet_retry_controller.factories.adapters.flat_file_adapter import FlatFileAdapter
from fleet_retry_controller.factories.adapters.tinydb_adapter import TinyDBAdapter

__all__ = ['CacheAdapter', 'FlatFileAdapter', 'TinyDBAdapter']
