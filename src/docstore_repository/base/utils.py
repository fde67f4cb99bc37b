import logging
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively convert models, dataclasses and special types to
    document-store compatible values.

    Handles:
    - Pydantic BaseModel instances (dumped by alias, so `id` becomes `_id`)
    - Python dataclasses
    - Enum members (stored by value)
    - Dictionaries (processing values recursively)
    - Lists, tuples and sets (sets and tuples become lists)

    Datetimes, ObjectIds and other BSON-native values are returned as-is.

    Args:
        data: The data to convert

    Returns:
        The converted data, ready for storage
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        return prepare_for_storage(data.model_dump(by_alias=True, mode="python"))

    if isinstance(data, Enum):
        return data.value

    if isinstance(data, dict):
        return {k: prepare_for_storage(v) for k, v in data.items()}

    if isinstance(data, (list, tuple, set, frozenset)):
        return [prepare_for_storage(item) for item in data]

    # Pydantic URL types and similar
    if data.__class__.__module__ == "pydantic.networks":
        return str(data)

    return data
