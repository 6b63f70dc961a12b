from dataclasses import dataclass
from typing import Any, Tuple, Union


class Absent:
    """Relation slot that was never populated by the association loader."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "<Absent>"


ABSENT = Absent()


@dataclass(frozen=True)
class Single:
    value: Any


@dataclass(frozen=True)
class Many:
    items: Tuple[Any, ...]

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)


RelationSlot = Union[Absent, Single, Many]


class Entity:
    """Base class for mapped records.

    Subclasses are the serialization contract for one entity kind: ``to_map``
    yields the column values that get persisted and ``from_map`` rebuilds an
    instance from a database row. The defaults work on plain public
    attributes; override both when a field needs conversion (dates, enums).

    Eagerly loaded associations live in a side table that is never persisted.
    """

    # set by ModelRegistry.register from the kind's metadata
    _primary_key = "id"

    def __init__(self, **kwargs):
        object.__setattr__(self, "_relations", {})
        for key, value in kwargs.items():
            setattr(self, key, value)

    @classmethod
    def from_map(cls, row):
        return cls(**row)

    def to_map(self):
        return {key: value for key, value in vars(self).items() if not key.startswith("_")}

    def _relation_table(self):
        try:
            return object.__getattribute__(self, "_relations")
        except AttributeError:
            # subclasses that skip Entity.__init__
            object.__setattr__(self, "_relations", {})
            return object.__getattribute__(self, "_relations")

    def set_relation(self, name, slot):
        if not isinstance(slot, (Single, Many, Absent)):
            raise TypeError(f"Relation slot must be Single, Many or ABSENT, got {type(slot).__name__}")
        if slot is ABSENT:
            self._relation_table().pop(name, None)
        else:
            self._relation_table()[name] = slot

    def relation(self, name) -> RelationSlot:
        return self._relation_table().get(name, ABSENT)

    def get_relation(self, name):
        """Single related instance, or None when the relation was not loaded."""
        slot = self.relation(name)
        if isinstance(slot, Single):
            return slot.value
        if isinstance(slot, Many) and slot.items:
            return slot.items[0]
        return None

    def get_relation_list(self, name):
        """Related instances as a list; empty when the relation was not loaded."""
        slot = self.relation(name)
        if isinstance(slot, Many):
            return list(slot.items)
        if isinstance(slot, Single):
            return [slot.value]
        return []

    def is_loaded(self, name):
        return self.relation(name) is not ABSENT

    def __repr__(self):
        pk = self._primary_key
        pk_val = self.to_map().get(pk, "New")
        return f"<{self.__class__.__name__}({pk}={pk_val})>"
