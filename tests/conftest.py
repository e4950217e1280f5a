"""Shared pytest fixtures."""

import pytest

from secenv.core.secrets.backends import Backends
from tests.helpers import CountingPrompt, FakeCloud, FakeKeyring


@pytest.fixture
def fake_backends():
    """In-memory keyring and cloud backends."""
    return Backends(keyring=FakeKeyring(), cloud=FakeCloud())


@pytest.fixture
def counting_prompt():
    """Prompt that fails the test if it is ever called."""
    return CountingPrompt()
