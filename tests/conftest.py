"""
Shared pytest fixtures and configuration for all tests.

This module provides fixtures for:
- Temporary configuration files
- Cache store paths (flat file and TinyDB)
- Environment isolation for FLEET_* variables
- Resolved remediation settings
- Temporary directories and cleanup
"""

import tempfile
import shutil
from pathlib import Path
from typing import Dict, Any, Generator
import pytest
import yaml

from fleet_retry_controller.utils.config import RemediationSettings

# Variables the controller reads; cleared so the host environment cannot leak in
CONTROLLER_ENV_VARS = [
    "FLEET_URL", "FLEET_TOKEN",
    "FLEET_API_SLEEP", "FLEET_MAX_RETRIES", "FLEET_CACHE_FILE", "FLEET_LOG_LEVEL",
    "API_SLEEP", "MAX_RETRIES", "CACHE_FILE", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Remove controller environment variables for every test."""
    for name in CONTROLLER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test."""
    temp_path = Path(tempfile.mkdtemp(prefix="fleet_test_"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_config_dir(temp_dir: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = temp_dir / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@pytest.fixture
def temp_data_dir(temp_dir: Path) -> Path:
    """Create a temporary data directory for cache stores."""
    data_dir = temp_dir / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest.fixture
def flat_file_path(temp_data_dir: Path) -> Path:
    """Return path for the flat file cache."""
    return temp_data_dir / "retry_cache.db"


@pytest.fixture
def tinydb_path(temp_data_dir: Path) -> Path:
    """Return path for TinyDB JSON file."""
    return temp_data_dir / "retry_cache.json"


@pytest.fixture
def minimal_config_data(flat_file_path: Path, tinydb_path: Path) -> Dict[str, Any]:
    """Minimal configuration data for testing.

    Credentials plus cache paths inside the temporary directory.
    """
    return {
        "fleet": {
            "url": "https://fleet.config.test",
            "token": "config-token",
        },
        "cache": {
            "type": "flat_file"
        },
        "flat_file": {
            "path": str(flat_file_path)
        },
        "tiny_db": {
            "path": str(tinydb_path)
        },
    }


@pytest.fixture
def maximal_config_data(flat_file_path: Path, tinydb_path: Path) -> Dict[str, Any]:
    """Configuration data with every section set to a non-default value."""
    return {
        "fleet": {
            "url": "https://fleet.config.test",
            "token": "config-token",
            "api_prefix": "/api/latest/fleet",
            "prefix": "FLEET_",
        },
        "api": {
            "sleep": 0,
            "transport_retries": 1,
            "retry_delay": 0,
            "connect_timeout": 5,
            "timeout": 10,
            "per_page": 50,
        },
        "remediation": {
            "max_retries": 5,
            "backoff_schedule": [60, 120],
            "include_global": False,
            "teams": "Production,Staging",
            "exclude_policies": "Legacy Script",
        },
        "cache": {
            "type": "tiny_db",
            "max_age_seconds": 3600,
        },
        "flat_file": {
            "path": str(flat_file_path)
        },
        "tiny_db": {
            "path": str(tinydb_path)
        },
        "logging": {
            "level": "WARNING",
            "file": None,
        },
    }


def write_config_file(config_dir: Path, config_data: Dict[str, Any], filename: str = "config.yaml") -> Path:
    """Helper function to write configuration data to a YAML file.

    Args:
        config_dir: Directory to write the config file
        config_data: Configuration dictionary
        filename: Name of the config file (default: config.yaml)

    Returns:
        Path to the written config file
    """
    config_path = config_dir / filename
    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False, sort_keys=False)
    return config_path


@pytest.fixture
def minimal_config_file(temp_config_dir: Path, minimal_config_data: Dict[str, Any]) -> Path:
    """Create a minimal config file in a temporary directory."""
    return write_config_file(temp_config_dir, minimal_config_data)


@pytest.fixture
def maximal_config_file(temp_config_dir: Path, maximal_config_data: Dict[str, Any]) -> Path:
    """Create a maximal config file in a temporary directory."""
    return write_config_file(temp_config_dir, maximal_config_data)


@pytest.fixture
def mock_env_credentials(monkeypatch) -> Dict[str, str]:
    """Set up mock environment variables for Fleet API credentials.

    Returns:
        Dictionary of credential values set
    """
    credentials = {
        "FLEET_URL": "https://fleet.env.test",
        "FLEET_TOKEN": "env-token-12345",
    }

    for key, value in credentials.items():
        monkeypatch.setenv(key, value)

    return credentials


@pytest.fixture
def settings() -> RemediationSettings:
    """Resolved settings with no delays, for dispatcher tests."""
    return RemediationSettings(
        base_url="https://fleet.test",
        token="test-token",
        api_sleep=0,
        retry_delay=0,
    )
