# src/docstore_repository/base/entity.py

import logging
from enum import Enum
from typing import Any, Optional, Type, Union, get_args, get_origin

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import IncoherentEntityStateException, PropertyIdNotFoundException

log = logging.getLogger(__name__)

ID_FIELD = "id"
DOCUMENT_KEY = "_id"


class TrackerState(Enum):
    """Lifecycle tag of an entity instance."""

    NEW = "new"
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    DELETED = "deleted"


def new_id() -> str:
    """Generate a new time-sortable unique identifier."""
    return str(ObjectId())


def _is_none_type(t: Optional[Type]) -> bool:
    return t is type(None)


def _is_str_annotation(annotation: Any) -> bool:
    """True for `str` and `Optional[str]`."""
    if annotation is str:
        return True
    if get_origin(annotation) is Union:
        non_none = [a for a in get_args(annotation) if not _is_none_type(a)]
        return non_none == [str]
    return False


def ensure_property_id(entity_type: Type[Any]) -> None:
    """
    Check that an entity type declares a string identifier mapped to the
    document key.

    The type must be a pydantic model with a field named `id`, annotated
    as `str` or `Optional[str]`, whose alias is `_id`.

    Raises:
        PropertyIdNotFoundException: If the identifier field is missing or
            malformed.
    """
    if entity_type is None:
        raise ValueError("entity_type is required")
    fields = getattr(entity_type, "model_fields", None)
    name = getattr(entity_type, "__name__", repr(entity_type))
    if not fields or ID_FIELD not in fields:
        log.debug(f"{name} declares no '{ID_FIELD}' field")
        raise PropertyIdNotFoundException(name)

    field_info = fields[ID_FIELD]
    if not _is_str_annotation(field_info.annotation):
        log.debug(f"{name}.{ID_FIELD} is not string typed: {field_info.annotation!r}")
        raise PropertyIdNotFoundException(name)
    if field_info.alias != DOCUMENT_KEY:
        log.debug(f"{name}.{ID_FIELD} is not mapped to '{DOCUMENT_KEY}'")
        raise PropertyIdNotFoundException(name)


class EntityBase(BaseModel):
    """
    Base class for persisted entities.

    `id` is stored as the document key (`_id`); `change_tracker` is never
    persisted. A freshly constructed entity is NEW and has no identifier.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias=DOCUMENT_KEY)
    change_tracker: TrackerState = Field(default=TrackerState.NEW, exclude=True)

    def ensure_state(self) -> None:
        """
        Check that the identifier is coherent with the tracker state.

        NEW entities must not carry an identifier; any other state requires
        a non-empty one.

        Raises:
            IncoherentEntityStateException: On a violation.
        """
        has_id = self.id is not None and self.id.strip() != ""
        if self.change_tracker == TrackerState.NEW:
            if has_id:
                raise IncoherentEntityStateException(type(self).__name__)
        elif not has_id:
            raise IncoherentEntityStateException(type(self).__name__)
