# src/docstore_repository/db_implementations/mongodb_indexes.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.collection import Collection

log = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "spanish"
DEFAULT_TEXT_INDEX_VERSION = 3


class IndexType(Enum):
    TEXT = "text"
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class FieldIndex:
    """One indexed field and how it is indexed."""

    name: str
    index_type: IndexType = IndexType.ASCENDING

    def __post_init__(self):
        if self.name is None or not self.name.strip():
            raise ValueError("index field name must not be empty")
        object.__setattr__(self, "name", self.name.strip())


def _extended_option(options: Optional[Mapping[str, Any]], key: str) -> Any:
    """Case-insensitive lookup in the caller's extended options."""
    if not options:
        return None
    for option_key, value in options.items():
        if option_key.lower() == key.lower():
            return value
    return None


class IndexOption:
    """Index administration for one collection."""

    def __init__(
        self,
        collection: Collection,
        default_language: str = DEFAULT_LANGUAGE,
        text_index_version: int = DEFAULT_TEXT_INDEX_VERSION,
    ):
        self._collection = collection
        self._default_language = default_language
        self._text_index_version = text_index_version

    def get_indexes(self) -> List[Dict[str, Any]]:
        return list(self._collection.list_indexes())

    def create_index(
        self,
        name: str,
        fields: Sequence[FieldIndex],
        unique: bool = False,
        extended_options: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Create an index on the collection.

        If any field is of type TEXT, all fields go into one combined text
        index using `defaultLanguage` and `textIndexVersion` from
        `extended_options` (falling back to the configured defaults);
        `unique` does not apply to it. Otherwise a compound
        ascending/descending index is created.

        Returns:
            The name of the created index.

        Raises:
            ValueError: If `name` is blank or `fields` is empty.
        """
        if name is None or not name.strip():
            raise ValueError("index name must not be empty")
        if not fields:
            raise ValueError("at least one index field is required")
        name = name.strip()

        if any(f.index_type is IndexType.TEXT for f in fields):
            language = _extended_option(extended_options, "defaultLanguage")
            version = _extended_option(extended_options, "textIndexVersion")
            try:
                version = int(version) if version is not None else self._text_index_version
            except (TypeError, ValueError):
                log.warning(
                    f"Ignoring invalid textIndexVersion {version!r} for index '{name}'"
                )
                version = self._text_index_version
            keys = [(f.name, TEXT) for f in fields]
            options = {
                "name": name,
                "default_language": str(language) if language else self._default_language,
                "textIndexVersion": version,
            }
        else:
            keys = [
                (f.name, ASCENDING if f.index_type is IndexType.ASCENDING else DESCENDING)
                for f in fields
            ]
            options = {"name": name, "unique": unique}

        log.debug(f"Ensuring index '{name}' on keys {keys} with options {options}")
        created = self._collection.create_index(keys, **options)
        log.info(f"Index '{created}' ensured on '{self._collection.name}'.")
        return created
