import pytest
import pytest_asyncio

from liteorm.migrations import MigrationManager
from liteorm.registry import ModelRegistry
from liteorm.test_utils import CountingEngine, register_sample_models


@pytest.fixture
def registry():
    reg = register_sample_models(ModelRegistry())
    yield reg
    reg.clear()


@pytest_asyncio.fixture
async def engine():
    engine = CountingEngine(":memory:")
    await engine.connect()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def db(engine, registry):
    """Engine with the sample schema created and the statement log cleared."""
    await MigrationManager(registry).create_tables(engine)
    engine.reset()
    return engine
