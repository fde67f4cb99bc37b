# src/docstore_repository/base/expression.py
"""
Compiler for the compact query-string grammar.

A query is a sequence of terms joined by exactly one connector, `&` (AND)
or `|` (OR)::

    name_eq=Bob&age_gt=30|status_in=('A','B')

Each term is `field_operator=value`. The connector written after a term
decides how the *next* term is combined with everything accumulated so
far, so the example compiles to ``((name = Bob AND age > 30) OR status in
[A, B])``. An order-by token has the form `field_asc` or `field_desc`.
"""

import logging
import re
from typing import Any, List, Optional, Tuple, Type, TypeVar

from .exceptions import InvalidFilterExpressionException
from .query import AND, OR, Filter, QueryOperator

log = logging.getLogger(__name__)

T = TypeVar("T")

SORTING_SEPARATOR = "_"
FIELD_SEPARATOR = "="
CONNECTORS = {"&": AND, "|": OR}
NULL_TOKEN = "#"

_OPERATORS = "|".join(sorted((op.value for op in QueryOperator), key=len, reverse=True))
_TERM = (
    rf"[a-zA-Z0-9_]+_(?:{_OPERATORS})="
    r"(?:\([a-zA-Z0-9 _'\",.#-]+\)|[a-zA-Z0-9 _.#-]*)"
)
EXPRESSION_PATTERN = re.compile(rf"^{_TERM}(?:[&|]{_TERM})*$", re.IGNORECASE)

STRING_SET_PATTERN = re.compile(r"^\((?:(?:'[^']*'|#),*)+\)$")
STRING_SET_ITEM = re.compile(r"'([^']*)'|(#)")
_NUMBER = r"-?[0-9]+(?:\.[0-9]+)?"
NUMERIC_SET_PATTERN = re.compile(rf"^\({_NUMBER}(?:,+{_NUMBER})*,*\)$")
NUMERIC_SET_ITEM = re.compile(_NUMBER)

FIELD_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
SORT_DIRECTIONS = {"asc": False, "desc": True}


class FilterExpression:
    """A query string plus an optional order-by token, compiled on demand."""

    def __init__(self, order_by: Optional[str], query: Optional[str]):
        self.order_by = (order_by or "").strip()
        self.query = (query or "").strip()

    def __repr__(self) -> str:
        return f"FilterExpression(order_by={self.order_by!r}, query={self.query!r})"

    def build_filter(self, entity_type: Optional[Type[T]] = None) -> Filter[T]:
        """
        Compiles the expression into a Filter.

        The whole query is validated before any term is applied, so a
        malformed query never yields a partial filter.

        Raises:
            InvalidFilterExpressionException: If the query or order-by token
                is malformed, or a set value is neither a string nor a
                numeric list.
        """
        result: Filter[T] = Filter(entity_type)

        if self.query:
            if not EXPRESSION_PATTERN.match(self.query):
                log.debug(f"Query does not match the filter grammar: {self.query!r}")
                raise InvalidFilterExpressionException(self.query)

            # Terms at even positions, connectors at odd positions
            parts = re.split(r"([&|])", self.query)
            connector = AND
            for index in range(0, len(parts), 2):
                self._apply_term(result, parts[index], connector)
                if index + 1 < len(parts):
                    connector = CONNECTORS[parts[index + 1]]

        if self.order_by:
            field_name, descending = self._parse_sort()
            result.sort_by(field_name, descending)

        log.debug(f"Compiled {self!r} into {result!r}")
        return result

    def _apply_term(self, target: Filter[T], term: str, connector: str) -> None:
        field_operator, value = term.split(FIELD_SEPARATOR, 1)
        field_name, operator_token = field_operator.rsplit(SORTING_SEPARATOR, 1)
        try:
            operator = QueryOperator(operator_token.lower())
        except ValueError:
            raise InvalidFilterExpressionException(
                self.query, f"Unknown operator '{operator_token}'"
            ) from None

        if operator in (QueryOperator.EQ, QueryOperator.NE):
            value = None if value.strip() == NULL_TOKEN else value
        elif operator in (QueryOperator.IN, QueryOperator.NIN):
            value = self._parse_set(value)

        log.debug(f"Applying term {field_name} {operator.value} {value!r} with {connector.upper()}")
        target.add_condition(connector, field_name, operator, value)

    def _parse_set(self, value: str) -> List[Any]:
        if STRING_SET_PATTERN.match(value):
            return [
                None if null else quoted
                for quoted, null in STRING_SET_ITEM.findall(value)
            ]
        if NUMERIC_SET_PATTERN.match(value):
            # float() is locale independent
            return [float(item) for item in NUMERIC_SET_ITEM.findall(value)]
        raise InvalidFilterExpressionException(
            self.query, f"Invalid value list {value!r}"
        )

    def _parse_sort(self) -> Tuple[str, bool]:
        if SORTING_SEPARATOR not in self.order_by:
            raise InvalidFilterExpressionException(
                self.order_by, "Invalid order-by token"
            )
        field_name, direction = self.order_by.rsplit(SORTING_SEPARATOR, 1)
        direction = direction.lower()
        if not FIELD_PATTERN.match(field_name) or direction not in SORT_DIRECTIONS:
            raise InvalidFilterExpressionException(
                self.order_by, "Invalid order-by token"
            )
        return field_name, SORT_DIRECTIONS[direction]
