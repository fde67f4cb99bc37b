# src/docstore_repository/db_implementations/mongodb_repository.py

import logging
from datetime import datetime, timezone
from typing import (TYPE_CHECKING, Any, Dict, Generic, List, Mapping, Optional,
                    Type, TypeVar)

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

from docstore_repository.base.entity import (DOCUMENT_KEY, EntityBase,
                                             TrackerState, new_id)
from docstore_repository.base.exceptions import PropertyIdNotFoundException
from docstore_repository.base.interfaces import Predicate, Repository
from docstore_repository.base.projection import (EntityProjection, FieldNames,
                                                 NamingStrategy,
                                                 ProjectionResult)
from docstore_repository.base.query import (AND, CombinedCondition,
                                            Expression, Filter,
                                            FilterCondition, QueryOperator)
from docstore_repository.base.utils import prepare_for_storage
from docstore_repository.db_implementations.mongodb_indexes import (
    DEFAULT_LANGUAGE, DEFAULT_TEXT_INDEX_VERSION, IndexOption)

if TYPE_CHECKING:
    from docstore_repository.db_implementations.mongodb_context import \
        DataContext

# --- Type Variables ---
T = TypeVar("T", bound=EntityBase)
DB_RECORD_TYPE = Dict[str, Any]

ID_ALIASES = ("id", "Id", DOCUMENT_KEY)

_MONGO_OPERATORS = {
    QueryOperator.NE: "$ne",
    QueryOperator.GT: "$gt",
    QueryOperator.GTE: "$gte",
    QueryOperator.LT: "$lt",
    QueryOperator.LTE: "$lte",
    QueryOperator.IN: "$in",
    QueryOperator.NIN: "$nin",
}


def _to_object_id(value: Any) -> Any:
    """ObjectId for strings in canonical ObjectId form, the value unchanged otherwise."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        oid = ObjectId(value)
        if str(oid) == value:
            return oid
    return value


class MongoDBRepository(Repository[T], Generic[T]):
    """
    MongoDB repository implementation using pymongo.

    Every call runs inside the bound context's session when a transaction
    is active. Driver errors are logged and propagated unchanged.
    """

    def __init__(
        self,
        entity_type: Type[T],
        collection_name: Optional[str] = None,
        context: Optional["DataContext"] = None,
    ):
        """
        Args:
            entity_type: The pydantic entity class stored in the collection.
            collection_name: The MongoDB collection. Defaults to the entity
                class name.
            context: Data context to bind immediately. When omitted,
                `initialize` must be called before use.
        """
        super().__init__(entity_type, collection_name)
        self._collection: Optional[Collection] = None
        self._index_option: Optional[IndexOption] = None

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{entity_type.__name__}]"
        )
        self._logger.debug(
            f"Repository instance created for {entity_type.__name__} "
            f"(collection: '{self._collection_name}')."
        )
        if context is not None:
            self.initialize(context)

    def initialize(self, context: "DataContext") -> None:
        if context is None:
            raise ValueError("context is required")
        self._context = context
        self._collection = context.database[self._collection_name]

        settings = getattr(context, "settings", None)
        self._index_option = IndexOption(
            self._collection,
            default_language=getattr(settings, "default_language", DEFAULT_LANGUAGE),
            text_index_version=getattr(
                settings, "text_index_version", DEFAULT_TEXT_INDEX_VERSION
            ),
        )
        self._logger.info(
            f"Repository bound to collection '{self._collection_name}'."
        )

    @property
    def collection(self) -> Collection:
        self.ensure_context_initialized()
        return self._collection

    @property
    def index_option(self) -> IndexOption:
        """Index administration for this repository's collection."""
        self.ensure_context_initialized()
        return self._index_option

    def _session_kwargs(self) -> Dict[str, Any]:
        session = getattr(self._context, "session", None)
        return {"session": session} if session is not None else {}

    # --- CRUD ---

    def add(self, entity: T) -> T:
        self.ensure_context_initialized()
        self.validate_entity(entity)
        supplied_id = entity.id
        generated = supplied_id is None or not supplied_id.strip()
        if generated:
            entity.id = new_id()
            self._logger.debug(
                f"Generated ID '{entity.id}' for new {self.entity_type.__name__}"
            )

        db_doc = self._serialize_entity(entity)
        try:
            self._collection.insert_one(db_doc, **self._session_kwargs())
        except Exception as e:
            failed_id = entity.id
            if generated:
                # A new entity carries no identifier until it is stored
                entity.id = supplied_id
            self._handle_db_error(e, f"adding entity ID {failed_id}")
        entity.change_tracker = TrackerState.UNCHANGED
        self._logger.info(f"Added {self.entity_type.__name__} with ID '{entity.id}'.")
        return entity

    def update(self, entity: T) -> T:
        self.ensure_context_initialized()
        self.validate_entity(entity)
        key = self._require_key(entity)

        db_doc = self._serialize_entity(entity)
        try:
            result = self._collection.replace_one(
                {DOCUMENT_KEY: key}, db_doc, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"updating entity ID {entity.id}")
        if result.matched_count == 0:
            self._logger.warning(
                f"Update matched no {self.entity_type.__name__} with ID '{entity.id}'."
            )
        entity.change_tracker = TrackerState.UNCHANGED
        self._logger.info(f"Updated {self.entity_type.__name__} with ID '{entity.id}'.")
        return entity

    def delete(self, entity: T) -> T:
        self.ensure_context_initialized()
        self.validate_entity(entity)
        key = self._require_key(entity)

        try:
            result = self._collection.delete_one(
                {DOCUMENT_KEY: key}, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"deleting entity ID {entity.id}")
        self._logger.info(
            f"Deleted {result.deleted_count} {self.entity_type.__name__} "
            f"with ID '{entity.id}'."
        )
        return entity

    def exists(self, id: str) -> bool:
        self.ensure_context_initialized()
        key = self._key_from_id(id)
        try:
            count = self._collection.count_documents(
                {DOCUMENT_KEY: key}, limit=1, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"checking existence of ID {id}")
        return count > 0

    def find(self, id: str) -> Optional[T]:
        self.ensure_context_initialized()
        key = self._key_from_id(id)
        self._logger.debug(f"Finding {self.entity_type.__name__} by ID '{id}'")
        try:
            record_data = self._collection.find_one(
                {DOCUMENT_KEY: key}, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"finding entity ID {id}")
        if record_data is None:
            self._logger.debug(f"{self.entity_type.__name__} with ID '{id}' not found.")
            return None
        return self._deserialize_record(record_data)

    def find_by(self, filter: Optional[Filter[T]]) -> List[T]:
        self.ensure_context_initialized()
        if filter is None or filter.expression is None:
            self._logger.debug("Empty filter; returning no entities.")
            return []
        if filter.entity_type not in (None, self.entity_type):
            raise TypeError(
                f"Filter for {filter.entity_type.__name__} cannot run against "
                f"{self.entity_type.__name__}"
            )

        query = self._translate_expression(filter.expression)
        sort = self._translate_sort(filter)
        self._logger.debug(f"MongoDB find_by query: {query}, sort: {sort}")
        return self._find_many(query, sort, "finding entities by filter")

    def list_entities(self) -> List[T]:
        self.ensure_context_initialized()
        return self._find_many({}, None, "listing entities")

    def list(self, predicate: Predicate) -> List[T]:
        """
        Server-side when `predicate` is an `Expression`; a plain callable is
        applied to each entity of a full scan instead.
        """
        self.ensure_context_initialized()
        if predicate is None:
            raise ValueError("predicate is required")
        if isinstance(predicate, Expression):
            query = self._translate_expression(predicate)
            return self._find_many(query, None, "listing entities by predicate")
        if callable(predicate):
            return [e for e in self._find_many({}, None, "listing entities") if predicate(e)]
        raise TypeError(
            f"predicate must be an Expression or a callable, got {type(predicate).__name__}"
        )

    def delete_all(self) -> int:
        self.ensure_context_initialized()
        try:
            result = self._collection.delete_many({}, **self._session_kwargs())
        except Exception as e:
            self._handle_db_error(e, "deleting all entities")
        self._logger.info(
            f"Deleted {result.deleted_count} document(s) from '{self._collection_name}'."
        )
        return result.deleted_count

    def drop_collection(self) -> None:
        self.ensure_context_initialized()
        try:
            self._collection.database.drop_collection(
                self._collection_name, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"dropping collection {self._collection_name}")
        self._logger.info(f"Dropped collection '{self._collection_name}'.")

    # --- Projection ---

    def get_projection(
        self,
        fields: Mapping[str, Any],
        page: int = 1,
        page_size: int = 0,
        naming_strategy: NamingStrategy = NamingStrategy.DEFAULT,
        filter: Optional[Filter[T]] = None,
    ) -> ProjectionResult:
        """
        Return one page of documents restricted to `fields`.

        `fields` maps a field name to 1 (include) or anything else
        (exclude); the document key is always included. Paging: a page
        below 1 becomes 1 and a page size below 1 means "everything". When
        everything fits in one page the result reports page 1 and the total
        count as its page size.
        """
        self.ensure_context_initialized()
        if fields is None:
            raise ValueError("fields is required")

        projection: Dict[str, int] = {DOCUMENT_KEY: 1}
        for name, flag in fields.items():
            if name in (DOCUMENT_KEY, "Id"):
                continue
            projection[name] = 1 if flag == 1 else 0

        query: Dict[str, Any] = {}
        sort = None
        if filter is not None and filter.expression is not None:
            query = self._translate_expression(filter.expression)
        if filter is not None:
            sort = self._translate_sort(filter)

        try:
            count = self._collection.count_documents(query, **self._session_kwargs())
            page = max(page, 1)
            if page_size < 1:
                page_size = count
            cursor = self._collection.find(query, projection, **self._session_kwargs())
            if sort:
                cursor = cursor.sort(sort)
            if count > page_size:
                cursor = cursor.skip((page - 1) * page_size).limit(page_size)
            else:
                page = 1
                page_size = count
            records = list(cursor)
        except Exception as e:
            self._handle_db_error(e, "projecting entities")

        names = FieldNames()
        rows = []
        for record in records:
            row = EntityProjection.create(names, naming_strategy)
            for name, value in record.items():
                row.set(name, str(value) if isinstance(value, ObjectId) else value)
            rows.append(row)
        self._logger.debug(
            f"Projected {len(rows)} of {count} document(s) (page {page}, size {page_size})."
        )
        return ProjectionResult(count=count, page_size=page_size, page=page, result=rows)

    # --- Statistics ---

    def get_stats(self) -> Dict[str, Any]:
        self.ensure_context_initialized()
        try:
            stats = self._collection.database.command(
                "collstats", self._collection_name, **self._session_kwargs()
            )
        except Exception as e:
            self._handle_db_error(e, f"reading stats for {self._collection_name}")
        return dict(stats)

    # --- Helper Method Implementations ---

    def _find_many(self, query: Dict[str, Any], sort, context: str) -> List[T]:
        try:
            cursor = self._collection.find(query, **self._session_kwargs())
            if sort:
                cursor = cursor.sort(sort)
            records = list(cursor)
        except Exception as e:
            self._handle_db_error(e, context)
        entities = [self._deserialize_record(record) for record in records]
        self._logger.debug(f"Fetched {len(entities)} {self.entity_type.__name__}(s).")
        return entities

    def _key_from_id(self, id: str) -> Any:
        if id is None or not id.strip():
            raise ValueError("id must not be empty")
        return _to_object_id(id.strip())

    def _require_key(self, entity: T) -> Any:
        if entity.id is None or not entity.id.strip():
            raise PropertyIdNotFoundException(self.entity_type.__name__)
        return _to_object_id(entity.id.strip())

    def _serialize_entity(self, entity: T) -> Dict[str, Any]:
        data = prepare_for_storage(entity)
        if data.get(DOCUMENT_KEY) is None:
            data.pop(DOCUMENT_KEY, None)
        else:
            data[DOCUMENT_KEY] = _to_object_id(data[DOCUMENT_KEY])
        return data

    def _deserialize_record(self, record_data: DB_RECORD_TYPE) -> T:
        """
        Converts a MongoDB document into an UNCHANGED entity, ensuring
        retrieved datetimes are timezone-aware (UTC).
        """
        if record_data is None:
            raise ValueError("Cannot deserialize None record data.")

        data: Dict[str, Any] = {}
        for name, value in record_data.items():
            if name == DOCUMENT_KEY:
                data[name] = str(value) if value is not None else None
            elif isinstance(value, datetime) and value.tzinfo is None:
                data[name] = value.replace(tzinfo=timezone.utc)
            else:
                data[name] = value

        try:
            entity = self.entity_type.model_validate(data)
        except Exception as e:
            self._logger.error(
                f"Failed to instantiate {self.entity_type.__name__}: {e}. "
                f"Attempted fields: {list(data.keys())!r}",
                exc_info=True,
            )
            raise ValueError(
                f"Failed to deserialize database record into {self.entity_type.__name__}"
            ) from e
        entity.change_tracker = TrackerState.UNCHANGED
        return entity

    def _field_name(self, field: str) -> str:
        return DOCUMENT_KEY if field in ID_ALIASES else field

    def _translate_sort(self, filter: Filter[T]):
        if filter.sort is None:
            return None
        return [
            (
                self._field_name(filter.sort.field),
                DESCENDING if filter.sort.descending else ASCENDING,
            )
        ]

    def _translate_expression(self, expression: Expression) -> Dict[str, Any]:
        translated = self._translate_expression_recursive(expression)
        self._logger.debug(f"Translated expression to MongoDB query: {translated}")
        return translated

    def _translate_expression_recursive(self, expression: Expression) -> Dict[str, Any]:
        if isinstance(expression, FilterCondition):
            op = expression.operator
            val = expression.value
            if op is QueryOperator.TEXT:
                return {"$text": {"$search": val}}

            field = self._field_name(expression.field_path)
            if field == DOCUMENT_KEY:
                if isinstance(val, list):
                    val = [_to_object_id(v) for v in val]
                else:
                    val = _to_object_id(val)

            if op is QueryOperator.EQ:
                return {field: val}
            mongo_op = _MONGO_OPERATORS.get(op)
            if mongo_op is None:
                self._logger.error(
                    f"Encountered unhandled QueryOperator during MongoDB translation: {op!r}"
                )
                raise ValueError(f"Unsupported query operator for MongoDB: {op!r}")
            return {field: {mongo_op: val}}

        if isinstance(expression, CombinedCondition):
            mongo_logic_op = "$and" if expression.logical_operator == AND else "$or"
            return {
                mongo_logic_op: [
                    self._translate_expression_recursive(expression.left),
                    self._translate_expression_recursive(expression.right),
                ]
            }

        raise TypeError(f"Unknown Expression type: {type(expression)}")

    def _handle_db_error(self, error: Exception, context: str = "operation") -> None:
        self._logger.error(f"MongoDB error during {context}: {error}", exc_info=True)
        raise error
