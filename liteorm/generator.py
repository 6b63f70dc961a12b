from liteorm.builder import quote_identifier as q
from liteorm.exceptions import ConfigurationError
from liteorm.orm_types import StorageType


def _default_literal(value):
    if isinstance(value, bool):
        return str(int(value))
    return str(value)


class SchemaGenerator:
    """DDL text for registered entities."""

    def column_definition(self, column, for_alter=False):
        parts = [q(column.name), column.sql_type]
        if column.is_primary_key and not for_alter:
            parts.append("PRIMARY KEY")
            if column.auto_increment:
                parts.append("AUTOINCREMENT")
        elif not column.nullable:
            # ADD COLUMN cannot add NOT NULL without a default
            if not for_alter or column.default_value is not None:
                parts.append("NOT NULL")
        if column.default_value is not None:
            parts.append(f"DEFAULT {_default_literal(column.default_value)}")
        return " ".join(parts)

    def foreign_key_clause(self, column_name, fk):
        clause = f"FOREIGN KEY({q(column_name)}) REFERENCES {q(fk.table)}({q(fk.column)})"
        if fk.on_delete_cascade:
            clause += " ON DELETE CASCADE"
        if fk.on_update_cascade:
            clause += " ON UPDATE CASCADE"
        return clause

    def generate_create_table(self, metadata):
        if not metadata.columns:
            kind = getattr(metadata.kind, "__name__", metadata.kind)
            raise ConfigurationError(f"Model {kind} ({metadata.table_name}) declares no columns")

        column_defs = [self.column_definition(col) for col in metadata.columns.values()]
        for name, fk in metadata.foreign_keys.items():
            column_defs.append(self.foreign_key_clause(name, fk))

        return f"CREATE TABLE IF NOT EXISTS {q(metadata.table_name)} ({', '.join(column_defs)})"

    def generate_add_column(self, table_name, column):
        return f"ALTER TABLE {q(table_name)} ADD COLUMN {self.column_definition(column, for_alter=True)}"

    def generate_m2m_table(self, relation, source_meta, target_meta):
        source_key, target_key = relation.source_join_key, relation.target_join_key
        source_pk = source_meta.primary_key_column
        target_pk = target_meta.primary_key_column
        source_type = source_pk.sql_type if source_pk else StorageType.INTEGER.value
        target_type = target_pk.sql_type if target_pk else StorageType.INTEGER.value

        defs = [
            f"{q(source_key)} {source_type} NOT NULL",
            f"{q(target_key)} {target_type} NOT NULL",
        ]
        if source_pk:
            defs.append(f"FOREIGN KEY({q(source_key)}) REFERENCES {q(source_meta.table_name)}({q(source_pk.name)})")
        if target_pk:
            defs.append(f"FOREIGN KEY({q(target_key)}) REFERENCES {q(target_meta.table_name)}({q(target_pk.name)})")
        defs.append(f"PRIMARY KEY ({q(source_key)}, {q(target_key)})")

        return f"CREATE TABLE IF NOT EXISTS {q(relation.join_table)} ({', '.join(defs)})"
