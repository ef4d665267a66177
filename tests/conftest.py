"""Pytest configuration and fixtures."""

import logging
import sys
from pathlib import Path

import pytest
import yaml

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for service_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))


@pytest.fixture
def write_yaml(tmp_path: Path):
    """Write a mapping to a YAML file under tmp_path and return its path."""

    def _write(data: object, name: str = "logging.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


@pytest.fixture(autouse=True)
def restore_logging():
    """Remove the handler installed by setup_logging after each test."""
    from logsync import main

    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    if main._handler is not None:
        root_logger.removeHandler(main._handler)
        main._handler = None
    root_logger.setLevel(level)
