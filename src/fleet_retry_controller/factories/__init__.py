"""Cache adapter factory and adapters."""

from fleet_retry_controller.factories.cache_factory import CacheFactory, open_cache

__all__ = ['CacheFactory', 'open_cache']
