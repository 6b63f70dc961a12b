class ORMError(Exception):
    """Base class for every error raised by liteorm itself."""


class ConfigurationError(ORMError, ValueError):
    """Caller misuse detected before any statement reaches the database."""


class TransactionError(ConfigurationError):
    """A database handle was used outside the scope it belongs to."""


class SchemaValidationError(ORMError):
    def __init__(self, message, table=None, column=None):
        super().__init__(message)
        self.table = table
        self.column = column


class BatchError(ORMError):
    """Raised in strict mode when a batch path recorded per-item failures."""

    def __init__(self, report):
        first = report.failures[0] if report.failures else None
        detail = f": {first.context}: {first.error}" if first else ""
        super().__init__(f"{len(report.failures)} item(s) failed{detail}")
        self.report = report
