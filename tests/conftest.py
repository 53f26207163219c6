"""Test configuration and fixtures for bitstore tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from bitstore.models import Provider, StorageDescriptor
from bitstore.store import BitstreamStore

_ENV_VARS = (
    "BITSTORE_PROVIDER",
    "BITSTORE_CONTAINER",
    "BITSTORE_SUBFOLDER",
    "BITSTORE_IDENTITY",
    "BITSTORE_CREDENTIAL",
    "BITSTORE_REGION",
    "BITSTORE_ENDPOINT",
    "BITSTORE_USE_RELATIVE_PATH",
    "BITSTORE_ENABLED",
    "BITSTORE_STAGING_DIR",
    "BITSTORE_DIGITS_PER_LEVEL",
    "BITSTORE_DIRECTORY_LEVELS",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment and any .env file."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def descriptor(tmp_path, staging_dir) -> StorageDescriptor:
    """Filesystem store rooted in a temp dir, sharded, under ``assets/``."""
    return StorageDescriptor(
        provider=Provider.FILESYSTEM,
        container=str(tmp_path / "assetstore"),
        subfolder="assets",
        staging_dir=str(staging_dir),
    )


@pytest_asyncio.fixture
async def store(descriptor) -> AsyncGenerator[BitstreamStore]:
    """An initialized filesystem-backed store."""
    instance = BitstreamStore(descriptor)
    await instance.initialize()
    assert instance.is_initialized()
    yield instance
