"""
WHERE clause building for liteorm queries.

A WhereClause is an ordered list of SQL fragments plus the positional values
bound to their placeholders. Fragments are AND-ed together when rendered.

KEY USAGE PATTERNS:
==================

1. Chained predicates:
   WhereClause().equals('status', 'active').greater_than('age', 18)

2. Column expressions:
   (col('age') > 18) & col('name').like('A%')

3. Alternatives:
   WhereClause().equals('status', 'active').or_(WhereClause().equals('status', 'pending'))
"""

from liteorm.builder import quote_identifier
from liteorm.exceptions import ConfigurationError
from liteorm.orm_types import coerce_value

ALWAYS_FALSE = "1 = 0"


def _column(name):
    """Quote a column reference, part by part for qualified names like t.id."""
    if not isinstance(name, str):
        raise ConfigurationError(f"Unsafe SQL identifier: {name!r}")
    return ".".join(quote_identifier(part) for part in name.split("."))


def _group(conditions):
    if len(conditions) == 1:
        return conditions[0]
    return "(" + " AND ".join(conditions) + ")"


class WhereClause:
    def __init__(self):
        self.conditions = []
        self.arguments = []

    def _add(self, fragment, *values):
        self.conditions.append(fragment)
        self.arguments.extend(coerce_value(value) for value in values)
        return self

    def equals(self, column, value):
        return self._add(f"{_column(column)} = ?", value)

    def not_equals(self, column, value):
        return self._add(f"{_column(column)} != ?", value)

    def greater_than(self, column, value):
        return self._add(f"{_column(column)} > ?", value)

    def greater_than_or_equal(self, column, value):
        return self._add(f"{_column(column)} >= ?", value)

    def less_than(self, column, value):
        return self._add(f"{_column(column)} < ?", value)

    def less_than_or_equal(self, column, value):
        return self._add(f"{_column(column)} <= ?", value)

    def like(self, column, pattern):
        return self._add(f"{_column(column)} LIKE ?", pattern)

    def between(self, column, lower, upper):
        return self._add(f"{_column(column)} BETWEEN ? AND ?", lower, upper)

    def in_list(self, column, values):
        """IN filter. An empty value set matches nothing."""
        values = list(values)
        if not values:
            _column(column)
            return self._add(ALWAYS_FALSE)
        placeholders = ", ".join("?" for _ in values)
        return self._add(f"{_column(column)} IN ({placeholders})", *values)

    def not_in_list(self, column, values):
        """NOT IN filter. An empty value set excludes nothing."""
        values = list(values)
        if not values:
            _column(column)
            return self
        placeholders = ", ".join("?" for _ in values)
        return self._add(f"{_column(column)} NOT IN ({placeholders})", *values)

    def is_null(self, column):
        return self._add(f"{_column(column)} IS NULL")

    def is_not_null(self, column):
        return self._add(f"{_column(column)} IS NOT NULL")

    def and_(self, other):
        self.conditions.extend(other.conditions)
        self.arguments.extend(other.arguments)
        return self

    def or_(self, other):
        if not other.conditions:
            return self
        if self.conditions:
            combined = f"({_group(self.conditions)} OR {_group(other.conditions)})"
            self.conditions = [combined]
            self.arguments.extend(other.arguments)
        else:
            self.conditions.extend(other.conditions)
            self.arguments.extend(other.arguments)
        return self

    def copy(self):
        clone = WhereClause()
        clone.conditions = list(self.conditions)
        clone.arguments = list(self.arguments)
        return clone

    def __and__(self, other):
        return self.copy().and_(other)

    def __or__(self, other):
        return self.copy().or_(other)

    def __bool__(self):
        return bool(self.conditions)

    def build(self):
        if not self.conditions:
            return ""
        return "WHERE " + " AND ".join(self.conditions)

    @property
    def args(self):
        return list(self.arguments)

    def __repr__(self):
        return f"<WhereClause {self.build() or '(empty)'} args={self.arguments}>"


class ColumnFilter:
    """A column reference whose comparisons produce WhereClauses."""

    def __init__(self, column_name):
        _column(column_name)
        self.column_name = column_name

    def __eq__(self, other):
        if other is None:
            return WhereClause().is_null(self.column_name)
        return WhereClause().equals(self.column_name, other)

    def __ne__(self, other):
        if other is None:
            return WhereClause().is_not_null(self.column_name)
        return WhereClause().not_equals(self.column_name, other)

    def __lt__(self, other):
        return WhereClause().less_than(self.column_name, other)

    def __le__(self, other):
        return WhereClause().less_than_or_equal(self.column_name, other)

    def __gt__(self, other):
        return WhereClause().greater_than(self.column_name, other)

    def __ge__(self, other):
        return WhereClause().greater_than_or_equal(self.column_name, other)

    __hash__ = None

    def in_(self, values):
        return WhereClause().in_list(self.column_name, values)

    def not_in(self, values):
        return WhereClause().not_in_list(self.column_name, values)

    def like(self, pattern):
        return WhereClause().like(self.column_name, pattern)

    def between(self, lower, upper):
        return WhereClause().between(self.column_name, lower, upper)

    def is_null(self):
        return WhereClause().is_null(self.column_name)

    def is_not_null(self):
        return WhereClause().is_not_null(self.column_name)


def col(column_name):
    """Create a ColumnFilter to start building filter expressions"""
    return ColumnFilter(column_name)


def and_(*clauses):
    """Combine clauses with AND logic"""
    result = WhereClause()
    for clause in clauses:
        result.and_(clause)
    return result


def or_(*clauses):
    """Combine clauses with OR logic"""
    result = WhereClause()
    for clause in clauses:
        result.or_(clause)
    return result
