# src/docstore_repository/base/projection.py
"""
Schema-flexible rows for partial query results.

An `EntityProjection` pairs a `FieldNames` table, shared by every row of
one result set, with its own value list. Removing a field writes a
tombstone into the row instead of shrinking anything, so a name keeps the
same index in every row that shares the table.
"""

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

log = logging.getLogger(__name__)

DOCUMENT_KEY = "_id"
ID_PROPERTY = "Id"


class NamingStrategy(Enum):
    """How projection keys are spelled."""

    DEFAULT = "default"
    CAMEL_CASE = "camelcase"

    def resolve(self, name: str) -> str:
        if self is NamingStrategy.CAMEL_CASE and name:
            return name[0].lower() + name[1:]
        return name

    @classmethod
    def parse(cls, token: Optional[str]) -> "NamingStrategy":
        """Maps a client-supplied token (e.g. a header value) to a strategy."""
        if token and token.strip().lower() == cls.CAMEL_CASE.value:
            return cls.CAMEL_CASE
        return cls.DEFAULT


class _DeadValue:
    """Tombstone marking a removed or never-set slot."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<dead>"


_DEAD = _DeadValue()


class FieldNames:
    """Append-only, ordered table of field names."""

    def __init__(self, names: Sequence[str] = ()):
        if names is None:
            raise ValueError("names is required")
        self._names: List[str] = list(names)
        self._lookup: Dict[str, int] = {}
        # First occurrence wins for duplicated names
        for index in range(len(self._names) - 1, -1, -1):
            if self._names[index] is not None:
                self._lookup[self._names[index]] = index

    @property
    def fields(self) -> List[str]:
        return list(self._names)

    @property
    def field_count(self) -> int:
        return len(self._names)

    def index_of(self, name: str) -> int:
        if name is None:
            return -1
        return self._lookup.get(name, -1)

    def add_field(self, name: str) -> int:
        if name is None:
            raise ValueError("name is required")
        if name in self._lookup:
            raise ValueError(f"Field already exists: {name}")
        self._names.append(name)
        self._lookup[name] = len(self._names) - 1
        return self._lookup[name]

    def __contains__(self, name: object) -> bool:
        return name in self._lookup

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"FieldNames({self._names!r})"


class EntityProjection(MutableMapping):
    """
    A sparse name -> value row backed by a shared `FieldNames` table.

    Keys are resolved on every access: `_id` becomes `Id`, and every other
    name goes through the row's naming strategy. Setting an unknown name
    appends it to the shared table; rows that have not grown yet read the
    new slot as absent.
    """

    def __init__(
        self,
        fields: FieldNames,
        values: List[Any],
        naming_strategy: NamingStrategy = NamingStrategy.DEFAULT,
    ):
        if fields is None:
            raise ValueError("fields is required")
        if values is None:
            raise ValueError("values is required")
        self._fields = fields
        self._values = values
        self._naming_strategy = naming_strategy

    @classmethod
    def create(
        cls,
        fields: Optional[FieldNames] = None,
        naming_strategy: NamingStrategy = NamingStrategy.DEFAULT,
    ) -> "EntityProjection":
        """Creates an empty row, sharing `fields` when given."""
        return cls(fields if fields is not None else FieldNames(), [], naming_strategy)

    @property
    def field_names(self) -> FieldNames:
        return self._fields

    @property
    def naming_strategy(self) -> NamingStrategy:
        return self._naming_strategy

    def resolve_name(self, name: str) -> str:
        if name is None:
            raise ValueError("name is required")
        if name == DOCUMENT_KEY:
            name = ID_PROPERTY
        return self._naming_strategy.resolve(name)

    def _slot(self, name: str) -> int:
        """Index of a live slot for `name`, or -1."""
        index = self._fields.index_of(self.resolve_name(name))
        if index < 0:
            # Table names set through another row's strategy
            index = self._fields.index_of(name)
        if index < 0 or index >= len(self._values) or self._values[index] is _DEAD:
            return -1
        return index

    # --- Explicit mapping API ---

    def contains(self, name: str) -> bool:
        return self._slot(name) >= 0

    def get(self, name: str, default: Any = None) -> Any:
        index = self._slot(name)
        return self._values[index] if index >= 0 else default

    def set(self, name: str, value: Any) -> Any:
        return self._set_value(name, value, is_add=False)

    def add(self, name: str, value: Any) -> None:
        """Inserts a new field; fails if the name already holds a live value."""
        self._set_value(name, value, is_add=True)

    def remove(self, name: str) -> bool:
        index = self._slot(name)
        if index < 0:
            return False
        self._values[index] = _DEAD
        return True

    def clear(self) -> None:
        for index in range(len(self._values)):
            self._values[index] = _DEAD

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.items())

    def _set_value(self, name: str, value: Any, is_add: bool) -> Any:
        key = self.resolve_name(name)
        index = self._fields.index_of(key)
        if index < 0:
            index = self._fields.add_field(key)
        elif is_add and index < len(self._values) and self._values[index] is not _DEAD:
            raise ValueError(f"An item with the same key has already been added: {key}")

        if index >= len(self._values):
            self._values.extend([_DEAD] * (self._fields.field_count - len(self._values)))
        self._values[index] = value
        return value

    # --- MutableMapping protocol ---

    def __getitem__(self, name: str) -> Any:
        index = self._slot(name)
        if index < 0:
            raise KeyError(name)
        return self._values[index]

    def __setitem__(self, name: str, value: Any) -> None:
        self._set_value(name, value, is_add=False)

    def __delitem__(self, name: str) -> None:
        if not self.remove(name):
            raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __iter__(self) -> Iterator[str]:
        names = self._fields.fields
        for index, name in enumerate(names):
            if index < len(self._values) and self._values[index] is not _DEAD:
                yield name

    def __len__(self) -> int:
        return sum(1 for value in self._values if value is not _DEAD)

    def __repr__(self) -> str:
        return f"EntityProjection({self.to_dict()!r})"


@dataclass
class ProjectionResult:
    """One page of projected rows."""

    count: int = 0
    page_size: int = 0
    page: int = 0
    result: List[EntityProjection] = field(default_factory=list)
