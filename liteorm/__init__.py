from liteorm.base import ABSENT, Absent, Entity, Many, Single
from liteorm.config import DatabaseConfig
from liteorm.database import DatabaseEngine, TableColumn
from liteorm.exceptions import (
    BatchError,
    ConfigurationError,
    ORMError,
    SchemaValidationError,
    TransactionError,
)
from liteorm.filters import WhereClause, and_, col, or_
from liteorm.loader import AssociationLoader
from liteorm.migrations import MigrationManager
from liteorm.orm_types import (
    Blob,
    ColumnMetadata,
    EntityMetadata,
    ForeignKeyMetadata,
    Integer,
    Real,
    RelationKind,
    RelationshipMetadata,
    StorageType,
    Text,
)
from liteorm.query import Query
from liteorm.registry import ModelRegistry, infer_columns
from liteorm.results import BatchReport, ItemFailure, QueryResult
from liteorm.session import Session
from liteorm.transactions import Transaction
from liteorm.validator import SchemaValidator

__version__ = "0.1.0"

__all__ = [
    "ABSENT", "Absent", "Entity", "Many", "Single",
    "DatabaseConfig", "DatabaseEngine", "TableColumn", "Transaction",
    "ORMError", "ConfigurationError", "TransactionError", "SchemaValidationError", "BatchError",
    "WhereClause", "col", "and_", "or_",
    "StorageType", "RelationKind", "ColumnMetadata", "Integer", "Real", "Text", "Blob",
    "ForeignKeyMetadata", "RelationshipMetadata", "EntityMetadata",
    "ModelRegistry", "infer_columns",
    "Query", "AssociationLoader", "MigrationManager", "SchemaValidator", "Session",
    "BatchReport", "ItemFailure", "QueryResult",
]
