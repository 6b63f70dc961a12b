import logging
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from liteorm.config import DatabaseConfig
from liteorm.exceptions import ConfigurationError, TransactionError
from liteorm.orm_types import Text
from liteorm.registry import ModelRegistry
from liteorm.session import Session
from liteorm.test_utils import CountingEngine, User, user_columns


@pytest.mark.asyncio
async def test_open_creates_schema_and_records_version(registry):
    on_create = AsyncMock()
    config = DatabaseConfig(version=3)
    async with await Session.open(registry, config=config, on_create=on_create) as session:
        assert await session.engine.get_user_version() == 3
        assert await session.engine.table_exists("post_tags")
        assert session.validation_report.ok
        on_create.assert_awaited_once_with(session, 3)


@pytest.mark.asyncio
async def test_reopen_upgrades_additively(tmp_path):
    path = str(tmp_path / "app.db")

    v1 = ModelRegistry()
    v1.register_model(User, "users", user_columns()[:2])
    session = await Session.open(v1, config=DatabaseConfig(path=path, version=1))
    await session.query(User).create({"name": "Ada"})
    await session.close()

    v2 = ModelRegistry()
    v2.register_model(User, "users", user_columns() + [Text("bio")])
    upgrades = []
    session = await Session.open(
        v2, config=DatabaseConfig(path=path, version=2),
        on_upgrade=lambda s, old, new: upgrades.append((old, new)),
    )
    try:
        assert upgrades == [(1, 2)]
        assert session.migration_report.succeeded == 2
        ada = await session.query(User).find_first()
        assert ada.name == "Ada"
        assert ada.email is None and ada.bio is None
    finally:
        await session.close()


@pytest.mark.asyncio
async def test_reopen_same_version_runs_no_migration(tmp_path, registry):
    path = str(tmp_path / "app.db")
    await (await Session.open(registry, config=DatabaseConfig(path=path))).close()

    engine = CountingEngine(path)
    session = await Session.open(registry, config=DatabaseConfig(path=path, validate_schema=False), engine=engine)
    await session.close()
    assert engine.statements == ["PRAGMA user_version"]


@pytest.mark.asyncio
async def test_newer_database_is_rejected(tmp_path, registry):
    path = str(tmp_path / "app.db")
    await (await Session.open(registry, config=DatabaseConfig(path=path, version=5))).close()

    engine = CountingEngine(path)
    with pytest.raises(ConfigurationError, match="newer"):
        await Session.open(registry, config=DatabaseConfig(path=path, version=2), engine=engine)
    assert not engine.is_connected


@pytest.mark.asyncio
async def test_transaction_commits(registry):
    async with await Session.open(registry) as session:
        async def work(txn):
            users = session.query_with_transaction(User, txn)
            await users.create({"name": "A"})
            await users.create({"name": "B"})
            return await users.count()

        assert await session.transaction(work) == 2
        assert await session.query(User).count() == 2


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(registry):
    async with await Session.open(registry) as session:
        async def work(txn):
            await session.query(User, txn).create({"name": "A"})
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError, match="abort"):
            await session.transaction(work)
        assert await session.query(User).count() == 0
        assert not session.engine.in_transaction


@pytest.mark.asyncio
async def test_outer_handle_inside_transaction_is_rejected(registry):
    async with await Session.open(registry) as session:
        async def work(txn):
            await session.query(User, txn).create({"name": "A"})
            await session.query(User).count()

        with pytest.raises(TransactionError):
            await session.transaction(work)
        assert await session.query(User).count() == 0


@pytest.mark.asyncio
async def test_nested_and_stale_transaction_handles(registry):
    async with await Session.open(registry) as session:
        async with session.engine.transaction() as txn:
            with pytest.raises(TransactionError):
                async with session.engine.transaction():
                    pass
            await session.query(User, txn).create({"name": "A"})

        assert not txn.is_active
        with pytest.raises(TransactionError):
            await session.query(User, txn).count()
        assert await session.query(User).count() == 1


@pytest.mark.asyncio
async def test_closed_engine_is_rejected(registry):
    session = await Session.open(registry)
    await session.close()
    with pytest.raises(TransactionError):
        await session.query(User).count()


@pytest.mark.asyncio
async def test_echo_logs_statements(registry, caplog):
    with caplog.at_level(logging.INFO, logger="liteorm.database"):
        async with await Session.open(registry, config=DatabaseConfig(echo=True)) as session:
            await session.query(User).filter(name="A").count()
    assert '[SQL EXECUTE]: SELECT COUNT(*) AS count FROM "users" WHERE "name" = ? | [PARAMS]: (\'A\',)' in caplog.text


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("LITEORM_PATH", "/tmp/app.db")
    monkeypatch.setenv("LITEORM_VERSION", "4")
    monkeypatch.setenv("LITEORM_ECHO", "true")
    monkeypatch.setenv("LITEORM_PARTIAL_JOIN_POLICY", "fail")

    config = DatabaseConfig.from_env()
    assert config.path == "/tmp/app.db"
    assert config.version == 4
    assert config.echo is True
    assert config.partial_join_policy == "fail"
    assert config.validate_schema is True

    assert DatabaseConfig.from_env(version=7).version == 7
    assert DatabaseConfig().version == 4
    assert DatabaseConfig(path="other.db").path == "other.db"


def test_config_rejects_invalid_values(monkeypatch):
    with pytest.raises(ValidationError):
        DatabaseConfig(version=0)
    with pytest.raises(ValidationError):
        DatabaseConfig(timeout=0)
    with pytest.raises(ValidationError):
        DatabaseConfig(pool_size=4)

    monkeypatch.setenv("LITEORM_PARTIAL_JOIN_POLICY", "sometimes")
    with pytest.raises(ValidationError):
        DatabaseConfig.from_env()


@pytest.mark.asyncio
async def test_session_passes_loader_policy_from_config(registry):
    config = DatabaseConfig(partial_join_policy="fail", strict_loading=True)
    async with await Session.open(registry, config=config) as session:
        assert session.loader.partial_join_policy == "fail"
        assert session.loader.strict
        assert session.query(User)._strict
