from __future__ import annotations

import pytest
import pytest_asyncio

from mqstore import Persistence, load_settings


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'mqstore.db'}"


@pytest.fixture
def settings(sqlite_url):
    return load_settings(database={"url": sqlite_url})


@pytest_asyncio.fixture
async def persistence(settings):
    store = Persistence(settings)
    await store.setup()
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
def dbm(persistence):
    return persistence.dbm
