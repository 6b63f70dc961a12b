import logging

from liteorm.builder import QueryBuilder
from liteorm.exceptions import BatchError, ConfigurationError
from liteorm.filters import WhereClause
from liteorm.loader import AssociationLoader
from liteorm.mapper import Mapper
from liteorm.orm_types import RelationKind
from liteorm.results import BatchReport, QueryResult

logger = logging.getLogger(__name__)


class Query:
    """Fluent finder and CRUD surface for one entity kind.

    Builder methods (``where``, ``order_by``, ``limit`` ...) mutate the query
    and return it; the ``async`` methods compile SQL from the registered
    metadata plus that state and run it on ``executor``, which is either the
    engine or a transaction handle.
    """

    def __init__(self, kind, executor, registry, loader=None, builder=None, strict=False):
        self.kind = kind
        self.executor = executor
        self.registry = registry
        self.builder = builder or QueryBuilder()
        self.loader = loader or AssociationLoader(registry, self.builder, strict=strict)
        self._strict = strict
        self._meta = None
        self._where = None
        self._order_by = None
        self._descending = False
        self._limit = None
        self._offset = None
        self._columns = None
        self._includes = []
        self.last_report = None

    def __repr__(self):
        kind = getattr(self.kind, "__name__", self.kind)
        return f"<Query {kind} where={self._where!r} includes={self._includes}>"

    @property
    def metadata(self):
        if self._meta is None:
            self._meta = self.registry.require(self.kind)
        return self._meta

    def _require_column(self, name, purpose):
        if name not in self.metadata.columns:
            raise ConfigurationError(f"Unknown {purpose} column {name!r} for {self.metadata.table_name}")
        return name

    # Builder state

    def where(self, clause):
        if not isinstance(clause, WhereClause):
            raise ConfigurationError(f"where() expects a WhereClause, got {type(clause).__name__}")
        if self._where is None:
            self._where = clause.copy()
        else:
            self._where.and_(clause)
        return self

    def filter(self, **kwargs):
        clause = WhereClause()
        for key, value in kwargs.items():
            self._require_column(key, "filter")
            if value is None:
                clause.is_null(key)
            else:
                clause.equals(key, value)
        return self.where(clause)

    def order_by(self, column, descending=False):
        self._order_by = self._require_column(column, "order by")
        self._descending = descending
        return self

    def limit(self, value: int):
        if value is not None and int(value) < 0:
            raise ConfigurationError("limit must be >= 0")
        self._limit = value
        return self

    def offset(self, value: int):
        if value is not None and int(value) < 0:
            raise ConfigurationError("offset must be >= 0")
        self._offset = value
        return self

    def select(self, *columns):
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = tuple(columns[0])
        self._columns = [self._require_column(c, "select") for c in columns] or None
        return self

    def include(self, names):
        if isinstance(names, str):
            names = [names]
        self._includes.extend(n for n in names if n not in self._includes)
        return self

    def with_relations(self, *names):
        return self.include(list(names))

    def strict(self, enabled=True):
        self._strict = enabled
        return self

    # Reads

    async def _materialize(self, rows):
        meta = self.metadata
        report = BatchReport()
        instances = Mapper(meta).hydrate_all(rows, report)
        if self._strict and report.failures:
            self.last_report = report
            raise BatchError(report)

        if self._includes and instances:
            report.merge(await self.loader.load_relations(self.executor, instances, self._includes, meta))
            if self._strict and report.failures:
                self.last_report = report
                raise BatchError(report)

        self.last_report = report
        return instances

    async def _fetch(self, limit, offset):
        sql, params = self.builder.build_select(
            self.metadata, self._where, self._order_by, self._descending,
            limit, offset, self._columns,
        )
        rows = await self.executor.query(sql, params)
        return await self._materialize(rows)

    async def find_all(self):
        return await self._fetch(self._limit, self._offset)

    async def find_first(self):
        results = await self._fetch(1, self._offset)
        return results[0] if results else None

    async def find_one(self):
        return await self.find_first()

    async def find_by_pk(self, key):
        meta = self.metadata
        if not meta.primary_key:
            raise ConfigurationError(f"{meta.table_name} has no primary key")
        sql, params = self.builder.build_select_by_key(meta, Mapper.coerce_value(key), self._columns)
        rows = await self.executor.query(sql, params)
        results = await self._materialize(rows)
        return results[0] if results else None

    async def count(self):
        sql, params = self.builder.build_count(self.metadata, self._where)
        rows = await self.executor.query(sql, params)
        return rows[0]["count"] if rows else 0

    async def paginate(self, page=1, page_size=20):
        if page < 1 or page_size < 1:
            raise ConfigurationError("page and page_size must be >= 1")
        total = await self.count()

        data = await self._fetch(page_size, (page - 1) * page_size)
        return QueryResult(data=data, total_count=total, page=page, page_size=page_size)

    # Writes

    async def delete(self):
        sql, params = self.builder.build_delete(self.metadata.table_name, self._where)
        return await self.executor.delete(sql, params)

    async def create(self, values):
        meta = self.metadata
        data = Mapper(meta).prepare_insert(values)
        sql, params = self.builder.build_insert(meta.table_name, data)
        row_id = await self.executor.insert(sql, params)

        if meta.primary_key:
            key = data.get(meta.primary_key, row_id)
            found = await self.find_by_pk(key)
            if found is not None:
                return found

        fields = dict(data)
        if meta.primary_key and meta.primary_key not in fields:
            fields[meta.primary_key] = row_id
        return meta.row_factory(fields)

    async def insert(self, instance):
        meta = self.metadata
        mapper = Mapper(meta)
        data = mapper.prepare_insert(mapper.field_map(instance), strict_keys=False)
        sql, params = self.builder.build_insert(meta.table_name, data)
        return await self.executor.insert(sql, params)

    async def update(self, instance):
        meta = self.metadata
        pk = meta.primary_key
        if not pk:
            raise ConfigurationError(f"{meta.table_name} has no primary key; use insert() instead")

        mapper = Mapper(meta)
        fields = mapper.field_map(instance)
        pk_value = fields.get(pk)
        if pk_value is None:
            raise ConfigurationError(
                f"Cannot update {meta.table_name} without a value for {pk}; use insert() for new records"
            )

        data = mapper.prepare_update({k: v for k, v in fields.items() if k != pk}, strict_keys=False)
        if not data:
            raise ConfigurationError(f"No values to update in {meta.table_name}")
        sql, params = self.builder.build_update(meta.table_name, data, pk, Mapper.coerce_value(pk_value))
        return await self.executor.update(sql, params)

    async def update_values(self, values):
        meta = self.metadata
        if not values:
            raise ConfigurationError(f"No values to update in {meta.table_name}")
        data = Mapper(meta).prepare_update(values)
        if not self._where:
            logger.warning("update_values() on %s has no where clause; every row will be updated", meta.table_name)
        sql, params = self.builder.build_update_where(meta.table_name, data, self._where)
        return await self.executor.update(sql, params)

    # Many-to-many links

    def _join_relation(self, relation_name):
        meta = self.metadata
        relation = meta.relationships.get(relation_name)
        if relation is None or relation.kind != RelationKind.MANY_TO_MANY:
            raise ConfigurationError(f"{meta.table_name}.{relation_name} is not a ManyToMany relation")
        if not relation.has_join_table:
            raise ConfigurationError(
                f"{meta.table_name}.{relation_name} needs join_table, source_join_key and target_join_key"
            )
        return relation

    def _link_keys(self, parent, relation, targets):
        target_meta = self.registry.require(relation.target)
        parent_key = Mapper(self.metadata).pk_value(parent)
        if parent_key is None:
            raise ConfigurationError(f"{self.metadata.table_name} instance has no primary key value")

        target_mapper = Mapper(target_meta)
        keys = []
        for target in targets:
            key = target_mapper.pk_value(target) if isinstance(target, target_meta.kind) else target
            if key is None:
                raise ConfigurationError(f"{target_meta.table_name} instance has no primary key value")
            keys.append(key)
        return parent_key, keys

    async def attach(self, parent, relation_name, *targets):
        """Link ``parent`` to each target through the join table; returns links written."""
        relation = self._join_relation(relation_name)
        parent_key, keys = self._link_keys(parent, relation, targets)
        written = 0
        for key in keys:
            sql, params = self.builder.build_m2m_insert(
                relation.join_table, parent_key, key, relation.source_join_key, relation.target_join_key
            )
            written += await self.executor.update(sql, params)
        return written

    async def detach(self, parent, relation_name, *targets):
        relation = self._join_relation(relation_name)
        parent_key, keys = self._link_keys(parent, relation, targets)
        removed = 0
        for key in keys:
            sql, params = self.builder.build_m2m_delete(
                relation.join_table, parent_key, key, relation.source_join_key, relation.target_join_key
            )
            removed += await self.executor.delete(sql, params)
        return removed
