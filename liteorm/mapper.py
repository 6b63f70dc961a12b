import logging

from liteorm.exceptions import ConfigurationError
from liteorm.orm_types import coerce_value

logger = logging.getLogger(__name__)


class Mapper:
    """Translates between entity instances and column value maps for one kind."""

    def __init__(self, metadata):
        self.metadata = metadata

    def __repr__(self):
        cols = ", ".join(self.metadata.columns.keys())
        pk = self.metadata.primary_key if self.metadata.primary_key else "None"
        kind = getattr(self.metadata.kind, "__name__", self.metadata.kind)
        return f"<Mapper class={kind} table={self.metadata.table_name} columns=[{cols}] pk={pk}>"

    def hydrate(self, row, report=None):
        """Build an instance from a row; a factory failure yields None."""
        try:
            return self.metadata.row_factory(dict(row))
        except Exception as exc:
            logger.warning("Skipping %s row %r: %s", self.metadata.table_name, row, exc)
            if report is not None:
                report.record_failure(row, exc, context=f"{self.metadata.table_name} row")
            return None

    def hydrate_all(self, rows, report=None):
        instances = []
        for row in rows:
            instance = self.hydrate(row, report)
            if instance is not None:
                instances.append(instance)
                if report is not None:
                    report.record_success()
        return instances

    def field_map(self, instance):
        if hasattr(instance, "to_map"):
            return dict(instance.to_map())
        return {k: v for k, v in vars(instance).items() if not k.startswith("_")}

    def pk_value(self, instance):
        pk = self.metadata.primary_key
        if pk is None:
            return None
        return self.field_map(instance).get(pk)

    coerce_value = staticmethod(coerce_value)

    def _check_columns(self, values):
        unknown = [key for key in values if key not in self.metadata.columns]
        if unknown:
            raise ConfigurationError(
                f"Unknown column(s) for {self.metadata.table_name}: {', '.join(unknown)}"
            )

    def prepare_insert(self, values, strict_keys=True):
        if strict_keys:
            self._check_columns(values)
        else:
            values = {k: v for k, v in values.items() if k in self.metadata.columns}

        pk_column = self.metadata.primary_key_column
        data = {}
        for name, value in values.items():
            column = self.metadata.columns[name]
            if value is None and column.nullable:
                continue
            if pk_column is not None and name == pk_column.name and pk_column.auto_increment:
                continue
            data[name] = self.coerce_value(value)

        if not data:
            raise ConfigurationError(f"No values to insert into {self.metadata.table_name}")
        return data

    def prepare_update(self, values, strict_keys=True):
        if strict_keys:
            self._check_columns(values)
        else:
            values = {k: v for k, v in values.items() if k in self.metadata.columns}
        return {name: self.coerce_value(value) for name, value in values.items()}
