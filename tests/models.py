# tests/models.py
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from docstore_repository.base.entity import EntityBase


class Person(EntityBase):
    """A simple entity class for repository testing."""

    name: str = "Test Person"
    age: int = 30
    status: Optional[str] = "active"
    tags: List[str] = Field(default_factory=lambda: ["test", "sample"])
    created_at: datetime = Field(
        default_factory=lambda: datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    )


class Animal(EntityBase):
    """A second entity type, used to check filters are not mixed up."""

    species: str = "cat"
