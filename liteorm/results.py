"""
Result collections for batch paths and paginated reads.

Batch operations (eager loading, table creation, upgrades) keep going when a
single item fails. Instead of dropping the failure on the floor they record
it in a BatchReport that is handed back to the caller, who can inspect it or
escalate it with ``raise_for_failures``.
"""

import math
from dataclasses import dataclass, field
from typing import Any, List

from liteorm.exceptions import BatchError


@dataclass(frozen=True)
class ItemFailure:
    item: Any
    error: BaseException
    context: str = ""

    def __str__(self):
        return f"{self.context}: {self.error}" if self.context else str(self.error)


@dataclass
class BatchReport:
    """Per-item outcome of a batch operation.

    Attributes:
        succeeded: Number of items that were processed.
        failures: Items that raised and were skipped.
        warnings: Non-fatal messages (swallowed races, skipped relations).
    """

    succeeded: int = 0
    failures: List[ItemFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failures

    def record_success(self, count=1):
        self.succeeded += count

    def record_failure(self, item, error, context=""):
        self.failures.append(ItemFailure(item, error, context))

    def warn(self, message):
        self.warnings.append(message)

    def merge(self, other):
        if other is None:
            return self
        self.succeeded += other.succeeded
        self.failures.extend(other.failures)
        self.warnings.extend(other.warnings)
        return self

    def raise_for_failures(self):
        if self.failures:
            raise BatchError(self)
        return self


@dataclass
class QueryResult:
    """One page of a query plus the total row count behind it."""

    data: List[Any]
    total_count: int
    page: int = 1
    page_size: int = 0

    @property
    def has_more(self):
        if self.page_size <= 0:
            return False
        return self.page * self.page_size < self.total_count

    @property
    def total_pages(self):
        if self.page_size <= 0:
            return 1 if self.total_count else 0
        return math.ceil(self.total_count / self.page_size)

    def __len__(self):
        return len(self.data)

    def __iter__(self):
        return iter(self.data)
