from liteorm.database import SQLExecutor
from liteorm.exceptions import TransactionError


class Transaction(SQLExecutor):
    """Handle for statements issued inside ``DatabaseEngine.transaction()``.

    It shares the engine's connection and is only valid until the enclosing
    scope commits or rolls back.
    """

    def __init__(self, engine):
        self.engine = engine
        self.echo = engine.echo
        self._closed = False

    @property
    def is_active(self):
        return not self._closed

    def close(self):
        self._closed = True

    def _connection(self):
        if self._closed:
            raise TransactionError("Transaction handle used after its scope closed")
        if self.engine.connection is None:
            raise TransactionError("Database engine is not connected")
        return self.engine.connection

    def __repr__(self):
        state = "active" if self.is_active else "closed"
        return f"<Transaction {state} db={self.engine.db_path}>"
