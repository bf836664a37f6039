"""Pytest configuration and fixtures."""

import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from folder_sync.cancellation import CancellationToken
from folder_sync.commands import ExecutionContext, RetryPolicy


@pytest.fixture
def temp_dirs():
    """Create temporary source and target directories for testing."""
    temp_root = Path(tempfile.mkdtemp())
    source = temp_root / "source"
    target = temp_root / "target"
    source.mkdir()
    target.mkdir()

    yield source, target

    # Cleanup
    shutil.rmtree(temp_root, ignore_errors=True)


@pytest.fixture
def token():
    """Fresh cancellation token."""
    return CancellationToken()


@pytest.fixture
def fast_retry():
    """Retry policy without backoff delays."""
    return RetryPolicy(max_attempts=5, base_delay=0)


@pytest.fixture
def test_logger():
    """Logger that propagates to the root logger so caplog sees it."""
    return logging.getLogger("folder_sync.tests")


@pytest.fixture
def ctx(token, fast_retry, test_logger):
    """Execution context for running commands directly."""
    return ExecutionContext(token, test_logger, fast_retry)


@pytest.fixture
def sample_config(tmp_path):
    """Create a sample config file for testing."""
    config_path = tmp_path / "config.yaml"
    config_content = """
folders:
  - /tmp/source=>/tmp/target
  - /tmp/photos=>/tmp/photos-backup

interval: 60

ignore:
  extensions:
    - .tmp
    - .bak
  filenames_prefix:
    - "~$"
  filenames_exact:
    - thumbs.db

logging:
  level: DEBUG
  file_path: sync.log
  backup_count: 3
"""
    config_path.write_text(config_content)
    return config_path

