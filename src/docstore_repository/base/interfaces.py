# src/docstore_repository/base/interfaces.py

from abc import ABC, abstractmethod
from typing import (Any, Callable, Dict, Generic, List, Mapping, Optional,
                    Type, TypeVar, Union)

from docstore_repository.base.entity import EntityBase, ensure_property_id
from docstore_repository.base.exceptions import \
    RepositoryContextNotInitializedException
from docstore_repository.base.projection import (NamingStrategy,
                                                 ProjectionResult)
from docstore_repository.base.query import Expression, Filter

# Type variable for any entity
T = TypeVar("T", bound=EntityBase)

Predicate = Union[Expression, Callable[[Any], bool]]


class Repository(Generic[T], ABC):
    """
    Base repository interface for CRUD, search and statistics over one
    collection of one entity type.

    A repository starts uninitialized; `initialize` binds it to a data-store
    context and must precede every other operation. The entity type's
    identifier shape is checked once, at construction.
    """

    def __init__(self, entity_type: Type[T], collection_name: Optional[str] = None):
        """
        Args:
            entity_type: The entity class stored in the collection.
            collection_name: Collection to use. Defaults to the entity
                class name.

        Raises:
            PropertyIdNotFoundException: If `entity_type` has no string
                identifier mapped to the document key.
            ValueError: If the collection name is blank.
        """
        ensure_property_id(entity_type)
        if collection_name is None or not collection_name.strip():
            collection_name = entity_type.__name__
        self._entity_type = entity_type
        self._collection_name = collection_name.strip()
        self._context: Optional[Any] = None

    @property
    def entity_type(self) -> Type[T]:
        """The entity type this repository manages."""
        return self._entity_type

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def context(self) -> Optional[Any]:
        """The bound data-store context, or None before `initialize`."""
        return self._context

    def ensure_context_initialized(self) -> None:
        """
        Raises:
            RepositoryContextNotInitializedException: If `initialize` was
                never called.
        """
        if self._context is None:
            raise RepositoryContextNotInitializedException(type(self).__name__)

    def validate_entity(self, entity: T) -> None:
        """
        Basic validation that an entity instance is of the expected type.

        Raises:
            ValueError: If the entity is None or not an instance of
                `self.entity_type`.
        """
        if entity is None:
            raise ValueError("entity is required")
        if not isinstance(entity, self.entity_type):
            raise ValueError(
                f"Entity must be of type {self.entity_type.__name__}, "
                f"but received {type(entity).__name__}"
            )

    # --- Initialization ---

    @abstractmethod
    def initialize(self, context: Any) -> None:
        """
        Binds the repository to a data-store context. Calling it again
        simply rebinds the collection handle.

        Raises:
            ValueError: If `context` is None.
        """
        pass

    # --- Core CRUD Methods ---

    @abstractmethod
    def add(self, entity: T) -> T:
        """
        Insert a new entity, assigning its identifier when it has none.

        Returns:
            The same entity, now UNCHANGED and carrying its identifier.
        """
        pass

    @abstractmethod
    def update(self, entity: T) -> T:
        """Replace the stored document with the same identifier."""
        pass

    @abstractmethod
    def delete(self, entity: T) -> T:
        """Remove the stored document with the same identifier."""
        pass

    @abstractmethod
    def exists(self, id: str) -> bool:
        """
        Raises:
            ValueError: If `id` is empty after trimming.
        """
        pass

    @abstractmethod
    def find(self, id: str) -> Optional[T]:
        """Return the entity with the given identifier, or None."""
        pass

    @abstractmethod
    def find_by(self, filter: Optional[Filter[T]]) -> List[T]:
        """
        Execute a filter, applying its sort spec if present. A missing or
        empty filter yields an empty list.
        """
        pass

    @abstractmethod
    def list_entities(self) -> List[T]:
        """Return every entity in the collection."""
        pass

    @abstractmethod
    def list(self, predicate: Predicate) -> List[T]:
        """
        Return every entity matching an ad-hoc predicate: either a
        predicate tree (evaluated by the store) or a callable (evaluated
        on each entity after a full scan).
        """
        pass

    @abstractmethod
    def delete_all(self) -> int:
        """Remove every document. Returns the number removed."""
        pass

    @abstractmethod
    def drop_collection(self) -> None:
        pass

    # --- Projection ---

    @abstractmethod
    def get_projection(
        self,
        fields: Mapping[str, Any],
        page: int = 1,
        page_size: int = 0,
        naming_strategy: NamingStrategy = NamingStrategy.DEFAULT,
        filter: Optional[Filter[T]] = None,
    ) -> ProjectionResult:
        """
        Return one page of documents restricted to a caller-chosen field
        set, as schema-flexible rows.
        """
        pass

    # --- Statistics ---

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Raw statistics document reported by the store."""
        pass

    @property
    def count(self) -> int:
        return int(self.get_stats().get("count", 0) or 0)

    @property
    def index_size(self) -> int:
        return int(self.get_stats().get("totalIndexSize", 0) or 0)

    @property
    def size(self) -> int:
        return int(self.get_stats().get("size", 0) or 0)

    @property
    def total_size(self) -> int:
        return self.index_size + self.size
