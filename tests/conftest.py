"""Pytest configuration and shared fixtures."""
import pytest

from objectgraph import Dumper, DumpFormat, GraphConfig, reset_default_config


@pytest.fixture(autouse=True)
def isolated_default_config():
    """Reset the thread-local default config around each test."""
    reset_default_config()
    yield
    reset_default_config()


@pytest.fixture
def plain_config():
    """Config rendering bodies only: no ids, names or types, single-space indentation, one line."""
    return GraphConfig(dump=DumpFormat(
        include_id=False,
        include_name=False,
        include_declared_type=False,
        include_actual_type=False,
        indentation=" ",
        line_separator="",
    ))


@pytest.fixture
def plain_dumper(plain_config):
    """Provide a dumper using the plain layout."""
    return Dumper(plain_config)
