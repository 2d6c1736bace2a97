import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from mqstore.config.settings import load_settings
from mqstore.database.dbm import DBM, backing_store_errors
from mqstore.database.schema import RetainedRow
from mqstore.errors import BackingStoreError


async def collect(iterator):
    return [item async for item in iterator]


def test_engine_requires_start(settings):
    dbm = DBM(settings)
    assert not dbm.started
    with pytest.raises(RuntimeError):
        _ = dbm.engine


def test_sqlite_engine_has_no_pool_options(settings):
    kwargs = DBM(settings)._engine_kwargs()
    assert "pool_size" not in kwargs


def test_server_engine_pool_options():
    settings = load_settings(pool={"size": 5, "max_overflow": 2, "timeout": 7, "recycle": 1800})
    kwargs = DBM(settings)._engine_kwargs()
    assert kwargs["pool_size"] == 5
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 7
    assert kwargs["pool_recycle"] == 1800
    assert kwargs["pool_pre_ping"] is True


def test_backing_store_errors_wraps_sqlalchemy_errors():
    original = OperationalError("select 1", {}, Exception("connection reset"))
    with pytest.raises(BackingStoreError) as excinfo:
        with backing_store_errors():
            raise original
    assert excinfo.value.orig is original
    assert excinfo.value.__cause__ is original
    assert "connection reset" in str(excinfo.value)


def test_backing_store_errors_leaves_other_errors():
    with pytest.raises(KeyError):
        with backing_store_errors():
            raise KeyError("x")


@pytest.mark.asyncio
async def test_raw_sql_strings_rejected(dbm):
    with pytest.raises(TypeError):
        await dbm.read("select 1")


@pytest.mark.asyncio
async def test_read(dbm):
    rows = await dbm.read(text("select 1 as one"))
    assert rows[0]["one"] == 1
    assert await dbm.read(select(RetainedRow.id).limit(1)) == []


@pytest.mark.asyncio
async def test_failed_statement_becomes_backing_store_error(dbm):
    with pytest.raises(BackingStoreError) as excinfo:
        await dbm.read(text("select * from no_such_table"))
    assert "no_such_table" in str(excinfo.value)


@pytest.mark.asyncio
async def test_stream_failure_raised_from_iterator(dbm):
    iterator = dbm.stream(text("select * from no_such_table"))
    with pytest.raises(BackingStoreError):
        await collect(iterator)


@pytest.mark.asyncio
async def test_start_fails_on_unreachable_database(tmp_path):
    missing = tmp_path / "no" / "such" / "dir" / "db.sqlite"
    dbm = DBM(load_settings(database={"url": f"sqlite+aiosqlite:///{missing}"}))
    with pytest.raises(BackingStoreError):
        await dbm.start()
    assert not dbm.started
