"""Shared utility modules for fleet_retry_controller."""

__all__ = [
    'config',
    'constants',
    'core',
    'exceptions',
    'filters',
    'logger',
    'models',
]
