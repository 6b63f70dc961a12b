"""
Forward-only, additive schema migrations.

``create_tables`` issues ``CREATE TABLE IF NOT EXISTS`` for every entity.
``upgrade_database`` moves a live schema from an older declared version to a
newer one: missing tables are created and columns declared in metadata but
absent from the live table are added with ``ALTER TABLE ... ADD COLUMN``.
Columns are never dropped or retyped.

Both return a BatchReport: created tables and added columns count as
successes, swallowed "already exists" / "duplicate column" errors are
recorded as warnings.
"""

import logging
import sqlite3

from liteorm.generator import SchemaGenerator
from liteorm.orm_types import RelationKind
from liteorm.results import BatchReport

logger = logging.getLogger(__name__)


def _is_already_exists(exc):
    return "already exists" in str(exc).lower()


def _is_duplicate_column(exc):
    return "duplicate column" in str(exc).lower()


class MigrationManager:
    def __init__(self, registry, generator=None):
        self.registry = registry
        self.generator = generator or SchemaGenerator()

    def _resolve(self, kinds):
        """Metadata for ``kinds`` (default: every registered kind), checked before any I/O."""
        if kinds is None:
            kinds = list(self.registry)
        entities = [self.registry.require(kind) for kind in kinds]
        statements = [self.generator.generate_create_table(meta) for meta in entities]
        return list(zip(entities, statements))

    def _join_tables(self, entities):
        """(join_table, ddl) for complete ManyToMany relations whose join table is not an entity."""
        registered_tables = {meta.table_name for meta in self.registry.all_models().values()}
        seen = set()
        tables = []
        for meta in entities:
            for relation in meta.relationships.values():
                if relation.kind != RelationKind.MANY_TO_MANY or not relation.has_join_table:
                    continue
                if relation.join_table in registered_tables or relation.join_table in seen:
                    continue
                target_meta = self.registry.get_info(relation.target)
                if target_meta is None:
                    continue
                seen.add(relation.join_table)
                tables.append((relation.join_table, self.generator.generate_m2m_table(relation, meta, target_meta)))
        return tables

    async def _create(self, executor, table_name, sql, report):
        try:
            await executor.execute(sql)
        except sqlite3.OperationalError as exc:
            if not _is_already_exists(exc):
                raise
            logger.warning("Table %s already exists, continuing", table_name)
            report.warn(f"table {table_name} already exists")
            return
        report.record_success()

    async def create_tables(self, executor, kinds=None):
        plan = self._resolve(kinds)
        report = BatchReport()
        for meta, sql in plan:
            await self._create(executor, meta.table_name, sql, report)
        for join_table, sql in self._join_tables([meta for meta, _ in plan]):
            await self._create(executor, join_table, sql, report)
        logger.info("Created %d table(s)", report.succeeded)
        return report

    async def upgrade_database(self, executor, old_version, new_version, kinds=None):
        report = BatchReport()
        if old_version >= new_version:
            return report

        plan = self._resolve(kinds)
        logger.info("Upgrading schema from version %s to %s", old_version, new_version)

        for meta, sql in plan:
            if not await executor.table_exists(meta.table_name):
                await self._create(executor, meta.table_name, sql, report)
                continue

            live = {col.name for col in await executor.table_info(meta.table_name)}
            for name, column in meta.columns.items():
                if name in live:
                    continue
                try:
                    await executor.execute(self.generator.generate_add_column(meta.table_name, column))
                except sqlite3.OperationalError as exc:
                    if not _is_duplicate_column(exc):
                        raise
                    logger.warning("Column %s.%s already present, continuing", meta.table_name, name)
                    report.warn(f"duplicate column {meta.table_name}.{name}")
                    continue
                logger.info("Added column %s.%s", meta.table_name, name)
                report.record_success()

        for join_table, sql in self._join_tables([meta for meta, _ in plan]):
            if not await executor.table_exists(join_table):
                await self._create(executor, join_table, sql, report)

        return report
