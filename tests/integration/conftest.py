"""Pytest configuration for integration tests."""

import pytest

from tests.helpers import throwaway_gnupg_home


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires a gpg binary)",
    )


def pytest_collection_modifyitems(config, items):
    """Add integration marker to all tests in this directory."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def gnupg_home(monkeypatch):
    """Throwaway keyring holding the unprotected RSA fixture key."""
    with throwaway_gnupg_home("rsa-plain.key.asc") as home:
        monkeypatch.setenv("GNUPGHOME", home)
        yield home
