import logging

from fleet_retry_controller.factories.adapters.flat_file_adapter import FlatFileAdapter
from fleet_retry_controller.factories.adapters.tinydb_adapter import TinyDBAdapter
from fleet_retry_controller.utils.constants import DEFAULT_CACHE_MAX_AGE_SECONDS, DEFAULT_CACHE_TYPE
from fleet_retry_controller.utils.core import epoch_now


class CacheFactory:
    """Factory to create cache adapters."""

    @staticmethod
    def create_adapter(cache_type):
        if cache_type == 'flat_file':
            return FlatFileAdapter()
        elif cache_type == 'tiny_db':
            return TinyDBAdapter()
        else:
            raise ValueError(f"Unsupported cache type: {cache_type}")


def open_cache(config, now=None):
    """Connect the configured cache adapter and prune stale entries.

    Args:
        config: Full configuration dictionary
        now: Current epoch time (default: current time)

    Returns:
        Connected cache adapter
    """
    cache_config = config.get('cache', {})
    cache_type = cache_config.get('type', DEFAULT_CACHE_TYPE)
    max_age = cache_config.get('max_age_seconds', DEFAULT_CACHE_MAX_AGE_SECONDS)

    adapter = CacheFactory.create_adapter(cache_type)
    adapter.connect(config[cache_type])
    logging.info("Cache initialized: %s (%s)", cache_type, adapter.path)

    adapter.prune(epoch_now() if now is None else now, max_age)
    return adapter
