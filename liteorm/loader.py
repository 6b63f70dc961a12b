"""
Batch eager loading of relationships.

For a batch of parents of one kind, every requested relation is resolved with
exactly one extra query, whatever the size of the batch:

    ManyToOne   SELECT * FROM target WHERE target_pk IN (<parent fk values>)
    OneToMany   SELECT * FROM target WHERE fk IN (<parent pk values>)
    ManyToMany  SELECT t.*, j.source AS <tag> FROM target t JOIN join_table j ...
                WHERE j.source IN (<parent pk values>)

Results are written into each parent's relation slots (``Single``/``Many``).
Parents without a match get no slot, which readers see as "not loaded".
"""

import logging
from collections import defaultdict

from liteorm.base import Entity, Many, Single
from liteorm.builder import PARENT_KEY_ALIAS, QueryBuilder
from liteorm.exceptions import BatchError, ConfigurationError
from liteorm.mapper import Mapper
from liteorm.orm_types import RelationKind
from liteorm.results import BatchReport

logger = logging.getLogger(__name__)

PARTIAL_JOIN_POLICIES = ("skip", "fail")


class AssociationLoader:
    def __init__(self, registry, builder=None, strict=False, partial_join_policy="skip"):
        if partial_join_policy not in PARTIAL_JOIN_POLICIES:
            raise ConfigurationError(f"Unknown partial join policy: {partial_join_policy}")
        self.registry = registry
        self.builder = builder or QueryBuilder()
        self.strict = strict
        self.partial_join_policy = partial_join_policy

    def _malformed(self, metadata, name, message, report):
        text = f"{metadata.table_name}.{name}: {message}"
        if self.partial_join_policy == "fail":
            raise ConfigurationError(text)
        logger.warning("Skipping relation %s", text)
        report.warn(text)

    def _hydrate(self, target_meta, row, report, relation_name):
        try:
            return target_meta.row_factory(dict(row))
        except Exception as exc:
            logger.warning("Skipping %s row for relation %s: %s", target_meta.table_name, relation_name, exc)
            report.record_failure(row, exc, context=f"{relation_name} -> {target_meta.table_name}")
            return None

    def _check_strict(self, report, failures_before):
        if self.strict and len(report.failures) > failures_before:
            raise BatchError(report)

    async def load_relations(self, executor, instances, names, metadata):
        report = BatchReport()
        instances = list(instances)
        if not instances or not names:
            return report

        for inst in instances:
            if not isinstance(inst, Entity):
                raise ConfigurationError(
                    f"Relations can only be loaded onto Entity instances, not {type(inst).__name__}"
                )

        for name in dict.fromkeys(names):
            relation = metadata.relationships.get(name)
            if relation is None:
                logger.warning("Unknown relation %r on %s, skipped", name, metadata.table_name)
                report.warn(f"unknown relation {name!r} on {metadata.table_name}")
                continue

            target_meta = self.registry.get_info(relation.target)
            if target_meta is None:
                target = getattr(relation.target, "__name__", relation.target)
                self._malformed(metadata, name, f"target {target} is not registered", report)
                continue

            failures_before = len(report.failures)
            if relation.kind == RelationKind.MANY_TO_ONE:
                await self._load_many_to_one(executor, instances, name, relation, metadata, target_meta, report)
            elif relation.kind == RelationKind.ONE_TO_MANY:
                await self._load_one_to_many(executor, instances, name, relation, metadata, target_meta, report)
            elif relation.kind == RelationKind.MANY_TO_MANY:
                await self._load_many_to_many(executor, instances, name, relation, metadata, target_meta, report)
            self._check_strict(report, failures_before)

        return report

    async def _load_many_to_one(self, executor, instances, name, relation, metadata, target_meta, report):
        fk = relation.foreign_key
        target_pk = target_meta.primary_key
        if not fk or not target_pk:
            self._malformed(metadata, name, "ManyToOne needs a foreign key and a target primary key", report)
            return

        mapper = Mapper(metadata)
        parent_keys = [mapper.field_map(inst).get(fk) for inst in instances]
        keys = list(dict.fromkeys(k for k in parent_keys if k is not None))
        if not keys:
            return

        sql, params = self.builder.build_select_in(target_meta.table_name, target_pk, keys)
        rows = await executor.query(sql, params)

        by_key = {}
        for row in rows:
            target = self._hydrate(target_meta, row, report, name)
            if target is not None:
                by_key[row[target_pk]] = target

        for inst, key in zip(instances, parent_keys):
            if key in by_key:
                inst.set_relation(name, Single(by_key[key]))
                report.record_success()

    async def _load_one_to_many(self, executor, instances, name, relation, metadata, target_meta, report):
        fk = relation.foreign_key
        if not fk or not metadata.primary_key:
            self._malformed(metadata, name, "OneToMany needs a foreign key and a parent primary key", report)
            return

        mapper = Mapper(metadata)
        parent_keys = [mapper.pk_value(inst) for inst in instances]
        keys = list(dict.fromkeys(k for k in parent_keys if k is not None))
        if not keys:
            return

        sql, params = self.builder.build_select_in(target_meta.table_name, fk, keys)
        rows = await executor.query(sql, params)

        grouped = defaultdict(list)
        for row in rows:
            child = self._hydrate(target_meta, row, report, name)
            if child is not None:
                grouped[row[fk]].append(child)

        for inst, key in zip(instances, parent_keys):
            if key in grouped:
                inst.set_relation(name, Many(tuple(grouped[key])))
                report.record_success()

    async def _load_many_to_many(self, executor, instances, name, relation, metadata, target_meta, report):
        if not relation.has_join_table:
            self._malformed(
                metadata, name,
                "ManyToMany needs join_table, source_join_key and target_join_key together", report,
            )
            return
        if not metadata.primary_key or not target_meta.primary_key:
            self._malformed(metadata, name, "ManyToMany needs primary keys on both sides", report)
            return

        mapper = Mapper(metadata)
        parent_keys = [mapper.pk_value(inst) for inst in instances]
        keys = list(dict.fromkeys(k for k in parent_keys if k is not None))
        if not keys:
            return

        sql, params = self.builder.build_join_select(
            target_meta.table_name, target_meta.primary_key,
            relation.join_table, relation.source_join_key, relation.target_join_key, keys,
        )
        rows = await executor.query(sql, params)

        seen = {}
        grouped = defaultdict(list)
        for row in rows:
            row = dict(row)
            tag = row.pop(PARENT_KEY_ALIAS)
            target_key = row.get(target_meta.primary_key)
            target = seen.get(target_key)
            if target is None:
                target = self._hydrate(target_meta, row, report, name)
                if target is None:
                    continue
                seen[target_key] = target
            grouped[tag].append(target)

        for inst, key in zip(instances, parent_keys):
            if key in grouped:
                inst.set_relation(name, Many(tuple(grouped[key])))
                report.record_success()
