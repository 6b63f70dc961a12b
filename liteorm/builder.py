import re

from liteorm.exceptions import ConfigurationError

PARENT_KEY_ALIAS = "_liteorm_parent_key"

_SAFE_IDENT = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def quote_identifier(identifier):
    if not identifier or not _SAFE_IDENT.match(str(identifier)):
        raise ConfigurationError(f"Unsafe SQL identifier: {identifier}")
    return f'"{identifier}"'


class QueryBuilder:
    """Compiles SQL text and positional parameters from entity metadata.

    Identifiers come from registered metadata and are validated and quoted;
    every value is bound as a ``?`` parameter.
    """

    def _quote(self, identifier):
        return quote_identifier(identifier)

    def _where(self, sql, params, where):
        if where is not None and where.conditions:
            sql += " " + where.build()
            params.extend(where.args)
        return sql

    def _paging(self, sql, params, limit, offset):
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
            if offset is not None:
                sql += " OFFSET ?"
                params.append(int(offset))
        elif offset is not None:
            sql += " LIMIT -1 OFFSET ?"
            params.append(int(offset))
        return sql

    def build_select(self, metadata, where=None, order_by=None, descending=False,
                     limit=None, offset=None, columns=None):
        table = self._quote(metadata.table_name)
        cols = ", ".join(self._quote(c) for c in columns) if columns else "*"
        params = []

        sql = f"SELECT {cols} FROM {table}"
        sql = self._where(sql, params, where)
        if order_by:
            sql += f" ORDER BY {self._quote(order_by)} {'DESC' if descending else 'ASC'}"
        sql = self._paging(sql, params, limit, offset)
        return sql, tuple(params)

    def build_select_by_key(self, metadata, key_value, columns=None):
        table = self._quote(metadata.table_name)
        cols = ", ".join(self._quote(c) for c in columns) if columns else "*"
        sql = f"SELECT {cols} FROM {table} WHERE {self._quote(metadata.primary_key)} = ? LIMIT 1"
        return sql, (key_value,)

    def build_count(self, metadata, where=None):
        params = []
        sql = f"SELECT COUNT(*) AS count FROM {self._quote(metadata.table_name)}"
        sql = self._where(sql, params, where)
        return sql, tuple(params)

    def build_insert(self, table_name, data):
        """Build INSERT SQL from table name and data dict."""
        table = self._quote(table_name)
        fields = list(data.keys())
        quoted_fields = [self._quote(f) for f in fields]
        placeholders = ", ".join(["?" for _ in fields])
        values = [data[f] for f in fields]
        sql = f"INSERT INTO {table} ({', '.join(quoted_fields)}) VALUES ({placeholders})"
        return sql, tuple(values)

    def build_update(self, table_name, data, pk_column, pk_value):
        table = self._quote(table_name)
        set_parts = []
        params = []
        for col, val in data.items():
            set_parts.append(f"{self._quote(col)} = ?")
            params.append(val)
        params.append(pk_value)
        sql = f"UPDATE {table} SET {', '.join(set_parts)} WHERE {self._quote(pk_column)} = ?"
        return sql, tuple(params)

    def build_update_where(self, table_name, data, where=None):
        table = self._quote(table_name)
        set_parts = []
        params = []
        for col, val in data.items():
            set_parts.append(f"{self._quote(col)} = ?")
            params.append(val)
        sql = f"UPDATE {table} SET {', '.join(set_parts)}"
        sql = self._where(sql, params, where)
        return sql, tuple(params)

    def build_delete(self, table_name, where=None):
        params = []
        sql = f"DELETE FROM {self._quote(table_name)}"
        sql = self._where(sql, params, where)
        return sql, tuple(params)

    def build_select_in(self, table_name, column, values):
        """SELECT * FROM table WHERE column IN (...) for one batch of keys."""
        values = list(values)
        placeholders = ", ".join("?" for _ in values)
        sql = f"SELECT * FROM {self._quote(table_name)} WHERE {self._quote(column)} IN ({placeholders})"
        return sql, tuple(values)

    def build_join_select(self, target_table, target_pk, join_table, source_key, target_key, parent_keys):
        """Select targets through a join table, tagging each row with its parent key."""
        parent_keys = list(parent_keys)
        placeholders = ", ".join("?" for _ in parent_keys)
        t_pk = self._quote(target_pk)
        j_source = self._quote(source_key)
        sql = (
            f"SELECT t.*, j.{j_source} AS {self._quote(PARENT_KEY_ALIAS)} "
            f"FROM {self._quote(target_table)} AS t "
            f"INNER JOIN {self._quote(join_table)} AS j ON t.{t_pk} = j.{self._quote(target_key)} "
            f"WHERE j.{j_source} IN ({placeholders})"
        )
        return sql, tuple(parent_keys)

    def build_m2m_insert(self, join_table, local_id, remote_id, local_key, remote_key):
        table = self._quote(join_table)
        l_key = self._quote(local_key)
        r_key = self._quote(remote_key)
        sql = f"INSERT OR IGNORE INTO {table} ({l_key}, {r_key}) VALUES (?, ?)"
        return sql, (local_id, remote_id)

    def build_m2m_delete(self, join_table, local_id, remote_id, local_key, remote_key):
        table = self._quote(join_table)
        l_key = self._quote(local_key)
        r_key = self._quote(remote_key)
        sql = f"DELETE FROM {table} WHERE {l_key} = ? AND {r_key} = ?"
        return sql, (local_id, remote_id)
