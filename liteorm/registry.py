import logging
from datetime import date, datetime, time
from types import MappingProxyType

from liteorm.base import Entity
from liteorm.exceptions import ConfigurationError
from liteorm.orm_types import ColumnMetadata, EntityMetadata, StorageType

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Per-application mapping of entity kind to its metadata.

    One instance is created by the application root and handed to every
    component that needs metadata. Registration is last-write-wins and does
    no structural validation; malformed relationships surface when a query
    asks for them.
    """

    def __init__(self):
        self._models = {}

    def register(self, kind, metadata):
        if kind in self._models:
            logger.debug("Re-registering %s (previous metadata replaced)", kind.__name__)
        self._models[kind] = metadata
        if isinstance(kind, type) and issubclass(kind, Entity) and kind is not Entity and metadata.primary_key:
            kind._primary_key = metadata.primary_key
        return metadata

    def register_model(self, kind, table_name, columns, primary_key=None, foreign_keys=None,
                       relationships=None, row_factory=None):
        metadata = EntityMetadata(
            table_name=table_name,
            kind=kind,
            columns=columns,
            primary_key=primary_key,
            foreign_keys=foreign_keys or {},
            relationships=relationships or {},
            row_factory=row_factory,
        )
        return self.register(kind, metadata)

    def get_info(self, kind):
        return self._models.get(kind)

    def require(self, kind):
        metadata = self._models.get(kind)
        if metadata is None:
            name = getattr(kind, "__name__", repr(kind))
            raise ConfigurationError(f"Model {name} is not registered")
        return metadata

    def all_models(self):
        return MappingProxyType(dict(self._models))

    def find_by_table(self, table_name):
        for metadata in self._models.values():
            if metadata.table_name == table_name:
                return metadata
        return None

    def clear(self):
        self._models.clear()

    def __contains__(self, kind):
        return kind in self._models

    def __len__(self):
        return len(self._models)

    def __iter__(self):
        return iter(list(self._models))


def _storage_type_for(value):
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return StorageType.INTEGER
    if isinstance(value, int):
        return StorageType.INTEGER
    if isinstance(value, float):
        return StorageType.REAL
    if isinstance(value, (str, date, datetime, time)):
        return StorageType.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return StorageType.BLOB
    return StorageType.TEXT


def infer_columns(instance, primary_key=None):
    """Infer column metadata from an instance's field map.

    A primary key that is still None on the sample instance is assumed to be
    auto-incremented. None-valued fields fall back to INTEGER for key-like
    names and TEXT otherwise.
    """
    fields = instance.to_map() if hasattr(instance, "to_map") else dict(vars(instance))
    columns = {}
    for name, value in fields.items():
        if name.startswith("_"):
            continue
        is_pk = name == primary_key
        if value is None:
            lowered = name.lower()
            storage_type = StorageType.INTEGER if is_pk or lowered == "id" or lowered.endswith("id") else StorageType.TEXT
            nullable = True
        else:
            storage_type = _storage_type_for(value)
            nullable = False

        columns[name] = ColumnMetadata(
            name=name,
            storage_type=storage_type,
            nullable=False if is_pk else nullable,
            is_primary_key=is_pk,
            auto_increment=is_pk and value is None,
        )
    return columns
