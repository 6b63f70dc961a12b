import inspect
import logging

from liteorm.builder import QueryBuilder
from liteorm.config import DatabaseConfig
from liteorm.database import DatabaseEngine
from liteorm.exceptions import ConfigurationError
from liteorm.loader import AssociationLoader
from liteorm.migrations import MigrationManager
from liteorm.query import Query
from liteorm.validator import SchemaValidator

logger = logging.getLogger(__name__)


async def _call(callback, *args):
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class Session:
    """Application root: owns the engine and hands out queries.

    ``Session.open`` connects and brings the schema to ``config.version``
    using ``PRAGMA user_version`` as the stored version.
    """

    def __init__(self, engine, registry, config=None, models=None):
        self.engine = engine
        self.registry = registry
        self.config = config or DatabaseConfig()
        self.models = list(models) if models is not None else None
        self.query_builder = QueryBuilder()
        self.loader = AssociationLoader(
            registry, self.query_builder,
            strict=self.config.strict_loading,
            partial_join_policy=self.config.partial_join_policy,
        )
        self.migrations = MigrationManager(registry)
        self.validator = SchemaValidator(registry)
        self.migration_report = None
        self.validation_report = None

    @classmethod
    async def open(cls, registry, models=None, config=None, on_create=None, on_upgrade=None, engine=None):
        config = config or DatabaseConfig()
        engine = engine or DatabaseEngine.from_config(config)
        await engine.connect()
        session = cls(engine, registry, config, models)
        try:
            await session._prepare_schema(on_create, on_upgrade)
        except BaseException:
            await engine.close()
            raise
        return session

    async def _prepare_schema(self, on_create, on_upgrade):
        current = await self.engine.get_user_version()
        target = self.config.version

        if current > target:
            raise ConfigurationError(
                f"Database is at version {current}, newer than declared version {target}; downgrades are not supported"
            )
        if current == 0:
            logger.info("Creating schema at version %s", target)
            self.migration_report = await self.migrations.create_tables(self.engine, self.models)
            if on_create is not None:
                await _call(on_create, self, target)
        elif current < target:
            self.migration_report = await self.migrations.upgrade_database(self.engine, current, target, self.models)
            if on_upgrade is not None:
                await _call(on_upgrade, self, current, target)

        if current != target:
            await self.engine.set_user_version(target)

        if self.config.validate_schema:
            self.validation_report = await self.validator.validate(self.engine, self.models)

    def query(self, kind, executor=None):
        return Query(
            kind, executor or self.engine, self.registry,
            loader=self.loader, builder=self.query_builder, strict=self.config.strict_loading,
        )

    def query_with_transaction(self, kind, transaction):
        return self.query(kind, transaction)

    async def transaction(self, callback):
        """Run ``callback(txn)`` inside one transaction and return its result."""
        async with self.engine.transaction() as txn:
            return await _call(callback, txn)

    async def close(self):
        await self.engine.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
