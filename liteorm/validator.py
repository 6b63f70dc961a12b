import logging

from liteorm.exceptions import SchemaValidationError
from liteorm.orm_types import StorageType
from liteorm.results import BatchReport

logger = logging.getLogger(__name__)


def type_family(declared):
    """Coarse SQLite affinity of a declared column type."""
    declared = (declared or "").upper()
    if "INT" in declared:
        return StorageType.INTEGER
    if any(token in declared for token in ("CHAR", "CLOB", "TEXT")):
        return StorageType.TEXT
    if "BLOB" in declared or not declared:
        return StorageType.BLOB
    if any(token in declared for token in ("REAL", "FLOA", "DOUB")):
        return StorageType.REAL
    return "NUMERIC"


class SchemaValidator:
    """Compares live tables against registered metadata.

    A missing table or declared column raises SchemaValidationError. Extra
    live columns and type family mismatches are only warnings.
    """

    def __init__(self, registry):
        self.registry = registry

    async def validate(self, executor, kinds=None):
        if kinds is None:
            kinds = list(self.registry)
        entities = [self.registry.require(kind) for kind in kinds]

        report = BatchReport()
        for meta in entities:
            table = meta.table_name
            if not await executor.table_exists(table):
                raise SchemaValidationError(f"Table {table} does not exist", table=table)

            live = {col.name: col for col in await executor.table_info(table)}
            for name, column in meta.columns.items():
                live_col = live.get(name)
                if live_col is None:
                    raise SchemaValidationError(
                        f"Column {table}.{name} is declared but missing from the database",
                        table=table, column=name,
                    )
                if type_family(live_col.type) != type_family(column.sql_type):
                    message = f"{table}.{name} is {live_col.type or 'untyped'} in the database, declared {column.sql_type}"
                    logger.warning("Type mismatch: %s", message)
                    report.warn(message)

            for name in live:
                if name not in meta.columns:
                    message = f"{table}.{name} exists in the database but is not declared"
                    logger.warning("Schema drift: %s", message)
                    report.warn(message)

            report.record_success()
        return report
