# src/docstore_repository/base/query.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar

from .utils import prepare_for_storage

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Generic Type Variables ---
T = TypeVar("T")


# --- Query Operator Enum ---
class QueryOperator(Enum):
    """Enumeration of filter operators. Values double as expression tokens."""

    # Comparison
    EQ = "eq"
    NE = "noteq"
    GT = "gt"
    GTE = "gteq"
    LT = "lt"
    LTE = "lteq"
    # Membership
    IN = "in"
    NIN = "notin"
    # Full-text search over the collection's text index
    TEXT = "text"


AND = "and"
OR = "or"


# --- Predicate Tree ---
class Expression:
    """Base class for predicate tree nodes."""

    def __and__(self, other: "Expression") -> "CombinedCondition":
        log.debug(f"Combining expressions with AND: {self!r} & {other!r}")
        return CombinedCondition(AND, self, other)

    def __or__(self, other: "Expression") -> "CombinedCondition":
        log.debug(f"Combining expressions with OR: {self!r} | {other!r}")
        return CombinedCondition(OR, self, other)


@dataclass(frozen=True)
class FilterCondition(Expression):
    """A single comparison, membership or text leaf.

    `field_path` is None for TEXT leaves.
    """

    field_path: Optional[str]
    operator: QueryOperator
    value: Any


@dataclass(frozen=True)
class CombinedCondition(Expression):
    """Binary AND/OR node."""

    logical_operator: str
    left: Expression
    right: Expression

    def __post_init__(self):
        if self.logical_operator not in (AND, OR):
            raise ValueError("logical_operator must be 'and' or 'or'")


@dataclass(frozen=True)
class SortSpec:
    """One sort field plus direction."""

    field: str
    descending: bool = False


# --- Filter Builder ---
class Filter(Generic[T]):
    """
    Fluent accumulator of a predicate tree and an optional sort spec for
    one entity type.

    The first condition seeds the tree whatever its connector; every later
    one becomes the right child of a new AND/OR root, so trees are
    left-deep in call order. Values are not checked against the entity
    type; mismatches surface in the store.
    """

    def __init__(self, entity_type: Optional[Type[T]] = None):
        self._entity_type = entity_type
        self._expression: Optional[Expression] = None
        self._sort: Optional[SortSpec] = None

    @property
    def entity_type(self) -> Optional[Type[T]]:
        return self._entity_type

    @property
    def expression(self) -> Optional[Expression]:
        return self._expression

    @property
    def sort(self) -> Optional[SortSpec]:
        return self._sort

    def __repr__(self) -> str:
        name = self._entity_type.__name__ if self._entity_type else "Generic"
        return f"Filter[{name}](expression={self._expression!r}, sort={self._sort!r})"

    # --- Core accumulation ---

    def _combine(self, connector: str, condition: FilterCondition) -> "Filter[T]":
        if self._expression is None:
            self._expression = condition
        elif connector == AND:
            self._expression = self._expression & condition
        else:
            self._expression = self._expression | condition
        log.debug(f"Current filter expression is now: {self._expression!r}")
        return self

    def add_condition(
        self,
        connector: str,
        field_name: Optional[str],
        operator: QueryOperator,
        value: Any,
    ) -> "Filter[T]":
        """Adds a leaf joined to the existing tree with `connector` ('and'/'or')."""
        if connector not in (AND, OR):
            raise ValueError("connector must be 'and' or 'or'")
        if operator is QueryOperator.TEXT:
            return self._combine(connector, FilterCondition(None, operator, value))
        if operator in (QueryOperator.IN, QueryOperator.NIN):
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise TypeError(f"Operator '{operator.value}' requires an iterable of values")
            value = list(value)
        return self._combine(
            connector,
            FilterCondition(field_name, operator, prepare_for_storage(value)),
        )

    # --- AND ---

    def and_eq(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.EQ, value)

    def and_not_eq(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.NE, value)

    def and_gt(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.GT, value)

    def and_gte(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.GTE, value)

    def and_lt(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.LT, value)

    def and_lte(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.LTE, value)

    def and_in(self, field_name: str, values: Iterable[Any]) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.IN, values)

    def and_not_in(self, field_name: str, values: Iterable[Any]) -> "Filter[T]":
        return self.add_condition(AND, field_name, QueryOperator.NIN, values)

    def and_text(self, text: str) -> "Filter[T]":
        return self.add_condition(AND, None, QueryOperator.TEXT, text)

    # --- OR ---

    def or_eq(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.EQ, value)

    def or_not_eq(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.NE, value)

    def or_gt(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.GT, value)

    def or_gte(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.GTE, value)

    def or_lt(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.LT, value)

    def or_lte(self, field_name: str, value: Any) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.LTE, value)

    def or_in(self, field_name: str, values: Iterable[Any]) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.IN, values)

    def or_not_in(self, field_name: str, values: Iterable[Any]) -> "Filter[T]":
        return self.add_condition(OR, field_name, QueryOperator.NIN, values)

    def or_text(self, text: str) -> "Filter[T]":
        return self.add_condition(OR, None, QueryOperator.TEXT, text)

    # --- Sorting ---

    def sort_by(self, field_name: str, descending: bool = False) -> "Filter[T]":
        """Sets the sort field and order, replacing any previous sort."""
        if not field_name or not field_name.strip():
            raise ValueError("sort field name must not be empty")
        self._sort = SortSpec(field_name.strip(), descending)
        log.debug(f"Sort order set: {self._sort!r}")
        return self

    # --- Factories ---

    @classmethod
    def create(
        cls, expression: Expression, entity_type: Optional[Type[T]] = None
    ) -> "Filter[T]":
        """Wraps an already built predicate tree."""
        if expression is None:
            raise ValueError("expression is required")
        if not isinstance(expression, Expression):
            raise TypeError(
                f"create() requires an Expression object, got {type(expression).__name__}"
            )
        new_filter = cls(entity_type)
        new_filter._expression = expression
        return new_filter

    @classmethod
    def from_expression(
        cls,
        order_by: Optional[str],
        query: Optional[str],
        entity_type: Optional[Type[T]] = None,
    ) -> "Filter[T]":
        """Compiles a query string (and optional order-by token) into a Filter."""
        from .expression import FilterExpression

        return FilterExpression(order_by, query).build_filter(entity_type)


def describe(expression: Optional[Expression]) -> str:
    """Renders a predicate tree as a compact, deterministic string."""
    if expression is None:
        return ""
    if isinstance(expression, FilterCondition):
        if expression.operator is QueryOperator.TEXT:
            return f"text({expression.value!r})"
        return f"{expression.field_path} {expression.operator.value} {expression.value!r}"
    if isinstance(expression, CombinedCondition):
        return (
            f"({describe(expression.left)} {expression.logical_operator.upper()} "
            f"{describe(expression.right)})"
        )
    raise TypeError(f"Unsupported expression type: {type(expression).__name__}")


def leaves(expression: Optional[Expression]) -> List[FilterCondition]:
    """Returns the leaf conditions of a tree in left-to-right order."""
    if expression is None:
        return []
    if isinstance(expression, CombinedCondition):
        return leaves(expression.left) + leaves(expression.right)
    return [expression]
