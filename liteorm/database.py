import logging
from contextlib import asynccontextmanager
from typing import NamedTuple, Optional

import aiosqlite

from liteorm.builder import quote_identifier
from liteorm.exceptions import TransactionError

logger = logging.getLogger(__name__)


class TableColumn(NamedTuple):
    name: str
    type: str
    nullable: bool
    default: Optional[str]
    primary_key: bool


class SQLExecutor:
    """Statement operations shared by the engine and transaction handles.

    Subclasses decide which connection a statement may run on by
    implementing ``_connection``.
    """

    echo = False

    def _connection(self):
        raise NotImplementedError

    def _log(self, sql, params=None):
        msg = f"[SQL EXECUTE]: {sql}"
        if params:
            msg += f" | [PARAMS]: {params}"
        logger.log(logging.INFO if self.echo else logging.DEBUG, msg)

    async def _run(self, sql, params=None):
        conn = self._connection()
        params = tuple(params or ())
        self._log(sql, params)
        return await conn.execute(sql, params)

    async def query(self, sql, params=None):
        cursor = await self._run(sql, params)
        try:
            rows = await cursor.fetchall()
        finally:
            await cursor.close()
        return [dict(row) for row in rows]

    async def insert(self, sql, params=None):
        cursor = await self._run(sql, params)
        try:
            return cursor.lastrowid
        finally:
            await cursor.close()

    async def update(self, sql, params=None):
        cursor = await self._run(sql, params)
        try:
            return cursor.rowcount
        finally:
            await cursor.close()

    async def delete(self, sql, params=None):
        return await self.update(sql, params)

    async def execute(self, sql, params=None):
        cursor = await self._run(sql, params)
        await cursor.close()

    async def table_info(self, table_name):
        rows = await self.query(f"PRAGMA table_info({quote_identifier(table_name)})")
        return [
            TableColumn(
                name=row["name"],
                type=row["type"] or "",
                nullable=not row["notnull"],
                default=row["dflt_value"],
                primary_key=bool(row["pk"]),
            )
            for row in rows
        ]

    async def table_exists(self, table_name):
        rows = await self.query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (table_name,)
        )
        return bool(rows)

    async def get_user_version(self):
        rows = await self.query("PRAGMA user_version")
        return rows[0]["user_version"] if rows else 0

    async def set_user_version(self, version):
        await self.execute(f"PRAGMA user_version = {int(version)}")


class DatabaseEngine(SQLExecutor):
    """The Database Driver: one aiosqlite connection in autocommit mode.

    Transactions are explicit and scoped with ``transaction()``. While one is
    open the engine itself refuses statements; they must go through the
    yielded handle.
    """

    def __init__(self, db_path=":memory:", echo=False, foreign_keys=False, timeout=5.0):
        self.db_path = db_path
        self.echo = echo
        self.foreign_keys = foreign_keys
        self.timeout = timeout
        self.connection = None
        self._active_transaction = None

        if echo and not logging.getLogger().handlers:
            logging.basicConfig(level=logging.INFO)

    @classmethod
    def from_config(cls, config):
        return cls(config.path, echo=config.echo, foreign_keys=config.foreign_keys, timeout=config.timeout)

    @property
    def is_connected(self):
        return self.connection is not None

    @property
    def in_transaction(self):
        return self._active_transaction is not None

    async def connect(self):
        if self.connection is None:
            self.connection = await aiosqlite.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
            self.connection.row_factory = aiosqlite.Row
            logger.debug("Connected to %s", self.db_path)
            if self.foreign_keys:
                await self.execute("PRAGMA foreign_keys = ON")
        return self

    async def close(self):
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            logger.debug("Closed %s", self.db_path)

    async def __aenter__(self):
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _connection(self):
        if self.connection is None:
            raise TransactionError("Database engine is not connected")
        if self._active_transaction is not None:
            raise TransactionError(
                "A transaction is open on this engine; use the transaction handle for every statement"
            )
        return self.connection

    @asynccontextmanager
    async def transaction(self):
        from liteorm.transactions import Transaction

        conn = self._connection()
        txn = Transaction(self)
        self._active_transaction = txn
        try:
            self._log("BEGIN")
            await conn.execute("BEGIN")
            try:
                yield txn
            except BaseException:
                if conn.in_transaction:
                    self._log("ROLLBACK")
                    await conn.execute("ROLLBACK")
                raise
            try:
                self._log("COMMIT")
                await conn.execute("COMMIT")
            except Exception:
                logger.error("COMMIT failed, rolling back")
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                raise
        finally:
            txn.close()
            self._active_transaction = None
