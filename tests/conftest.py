"""
Shared fixtures: zero-delay settings, fast retries, fake remotes and an
in-memory keyring.
"""

import keyring
import pytest

from fakes import FakeRemoteRepository, MemoryKeyring
from reposync.infrastructure.retry_manager import RetryManager
from reposync.models import RepositoryConfig, SyncConfig


@pytest.fixture(autouse=True)
def memory_keyring():
    """Keep tokens away from the real OS keychain."""
    previous = keyring.get_keyring()
    backend = MemoryKeyring()
    keyring.set_keyring(backend)
    yield backend
    keyring.set_keyring(previous)


@pytest.fixture
def fast_config():
    return SyncConfig(download_pause=0, file_delay=0, batch_delay=0, chunk_delay=0)


@pytest.fixture
def retry_manager():
    return RetryManager(max_retries=3, rate_limit_delay=0, base_delay=0)


@pytest.fixture
def source():
    return FakeRemoteRepository(RepositoryConfig("token", "upstream", "source-repo"))


@pytest.fixture
def destination():
    return FakeRemoteRepository(RepositoryConfig("token", "me", "dest-repo"))
