"""Pytest fixtures for gemclient tests."""

import pytest

from gemclient.tests.helpers import RecordingTransport


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    """Keep a developer's .env file out of the tests."""
    monkeypatch.setattr("gemclient.env.load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture
def recorder():
    """Factory for RecordingTransport instances."""
    return RecordingTransport
