"""
pytest configuration for build_cache tests.

Adds src directory to Python path for imports and isolates each test from
the runner's environment and any cached configuration.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

CONFIG_ENV_VARS = [
    "BUILD_CACHE_CONFIG",
    "SEGMENT_DOWNLOAD_TIMEOUT_MINS",
    "BUILD_CACHE_LOG_LEVEL",
    "BUILD_CACHE_LOG_DIR",
]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Default configuration, unaffected by env vars or a local config file."""
    from build_cache.config import load_config_from_dict, reset_config, set_config

    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BUILD_CACHE_CONFIG", str(tmp_path / "absent.yaml"))

    config = load_config_from_dict({})
    set_config(config)
    yield config
    reset_config()
