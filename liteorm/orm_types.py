from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Callable, Dict, Optional


def coerce_value(value):
    """Convert a Python value to the form it is stored in.

    Dates and times become ISO 8601 text, booleans become 0 or 1.
    """
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class StorageType(str, Enum):
    INTEGER = "INTEGER"
    REAL = "REAL"
    TEXT = "TEXT"
    BLOB = "BLOB"


class RelationKind(str, Enum):
    MANY_TO_ONE = "ManyToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_MANY = "ManyToMany"


@dataclass(frozen=True)
class ColumnMetadata:
    name: str
    storage_type: StorageType = StorageType.TEXT
    nullable: bool = True
    default_value: Optional[str] = None
    is_primary_key: bool = False
    auto_increment: bool = False

    def __post_init__(self):
        if not isinstance(self.storage_type, StorageType):
            object.__setattr__(self, "storage_type", StorageType(str(self.storage_type).upper()))

    @property
    def sql_type(self):
        return self.storage_type.value

    def __repr__(self):
        flags = []
        if self.is_primary_key:
            flags.append("pk")
        if self.auto_increment:
            flags.append("autoincrement")
        if not self.nullable:
            flags.append("not null")
        suffix = f" {' '.join(flags)}" if flags else ""
        return f"<Column {self.name} {self.sql_type}{suffix}>"


@dataclass(frozen=True, repr=False)
class Integer(ColumnMetadata):
    storage_type: StorageType = field(default=StorageType.INTEGER, init=False)


@dataclass(frozen=True, repr=False)
class Real(ColumnMetadata):
    storage_type: StorageType = field(default=StorageType.REAL, init=False)


@dataclass(frozen=True, repr=False)
class Text(ColumnMetadata):
    storage_type: StorageType = field(default=StorageType.TEXT, init=False)


@dataclass(frozen=True, repr=False)
class Blob(ColumnMetadata):
    storage_type: StorageType = field(default=StorageType.BLOB, init=False)


@dataclass(frozen=True)
class ForeignKeyMetadata:
    table: str
    column: str
    on_delete_cascade: bool = False
    on_update_cascade: bool = False


@dataclass(frozen=True)
class RelationshipMetadata:
    kind: RelationKind
    target: type
    foreign_key: Optional[str] = None
    join_table: Optional[str] = None
    source_join_key: Optional[str] = None
    target_join_key: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.kind, RelationKind):
            object.__setattr__(self, "kind", RelationKind(self.kind))

    @classmethod
    def many_to_one(cls, target, foreign_key):
        return cls(RelationKind.MANY_TO_ONE, target, foreign_key=foreign_key)

    @classmethod
    def one_to_many(cls, target, foreign_key):
        return cls(RelationKind.ONE_TO_MANY, target, foreign_key=foreign_key)

    @classmethod
    def many_to_many(cls, target, join_table, source_join_key, target_join_key):
        return cls(
            RelationKind.MANY_TO_MANY, target,
            join_table=join_table, source_join_key=source_join_key, target_join_key=target_join_key,
        )

    @property
    def join_fields(self):
        return (self.join_table, self.source_join_key, self.target_join_key)

    @property
    def has_join_table(self):
        """True only when join table and both join keys are all declared."""
        return all(self.join_fields)

    @property
    def is_partial_join(self):
        return any(self.join_fields) and not self.has_join_table

    def __repr__(self):
        target = getattr(self.target, "__name__", self.target)
        parts = [self.kind.value, f"target={target}"]
        if self.foreign_key:
            parts.append(f"foreign_key={self.foreign_key}")
        if self.join_table:
            parts.append(f"join_table={self.join_table}")
        return f"<Relationship {', '.join(parts)}>"


@dataclass
class EntityMetadata:
    table_name: str
    kind: type
    columns: Dict[str, ColumnMetadata]
    primary_key: Optional[str] = None
    foreign_keys: Dict[str, ForeignKeyMetadata] = field(default_factory=dict)
    relationships: Dict[str, RelationshipMetadata] = field(default_factory=dict)
    row_factory: Optional[Callable[[Dict[str, Any]], Any]] = None

    def __post_init__(self):
        if isinstance(self.columns, Mapping):
            self.columns = dict(self.columns)
        else:
            self.columns = {col.name: col for col in self.columns}
        self.foreign_keys = dict(self.foreign_keys or {})
        self.relationships = dict(self.relationships or {})

        if self.primary_key is None:
            pk_cols = [name for name, col in self.columns.items() if col.is_primary_key]
            if pk_cols:
                self.primary_key = pk_cols[0]

        if self.row_factory is None:
            self.row_factory = getattr(self.kind, "from_map", None)

    @property
    def primary_key_column(self):
        if self.primary_key is None:
            return None
        return self.columns.get(self.primary_key)

    @property
    def column_names(self):
        return list(self.columns.keys())

    def __repr__(self):
        cols = ", ".join(self.columns.keys())
        pk = self.primary_key if self.primary_key else "None"
        return (
            f"<EntityMetadata kind={getattr(self.kind, '__name__', self.kind)} "
            f"table={self.table_name} columns=[{cols}] pk={pk}>"
        )
