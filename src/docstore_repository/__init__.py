# src/docstore_repository/__init__.py

"""
Document Store Repository Library Initialization.

This package provides a synchronous repository pattern implementation over
a MongoDB document store, with a fluent filter builder, a query-string
filter compiler and schema-flexible projection rows.

It initializes a logger with a NullHandler and makes core components like
Repository interfaces, filter builders, exceptions, and the MongoDB
implementation available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False  # Prevent log messages from propagating to the root logger

# --------------------------------------------------------------------------
# Core Interface, Entity and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import Repository
from .base.entity import EntityBase, TrackerState, ensure_property_id, new_id
from .base.exceptions import (FileNotExistsException,
                              IncoherentEntityStateException,
                              InvalidFilterExpressionException,
                              PropertyIdNotFoundException,
                              RepositoryContextNotInitializedException)

# --------------------------------------------------------------------------
# Filter Building Exports
# --------------------------------------------------------------------------
# Filter is the primary way to construct queries; FilterExpression
# compiles the `order_by` / `query` string pair into one.
from .base.query import Filter, QueryOperator, SortSpec
from .base.expression import FilterExpression

# --------------------------------------------------------------------------
# Projection Exports
# --------------------------------------------------------------------------
from .base.projection import (EntityProjection, FieldNames, NamingStrategy,
                              ProjectionResult)

# --------------------------------------------------------------------------
# Implementation Exports
# --------------------------------------------------------------------------
from .settings import DbSettings
from .db_implementations.mongodb_repository import MongoDBRepository
from .db_implementations.mongodb_context import DataContext
from .db_implementations.mongodb_indexes import FieldIndex, IndexOption, IndexType
from .audit import AuditHandler, AuditMessage, AuditMessageType

__all__ = [
    # Core
    "Repository",
    "EntityBase",
    "TrackerState",
    "ensure_property_id",
    "new_id",
    # Exceptions
    "FileNotExistsException",
    "IncoherentEntityStateException",
    "InvalidFilterExpressionException",
    "PropertyIdNotFoundException",
    "RepositoryContextNotInitializedException",
    # Query
    "Filter",
    "FilterExpression",
    "QueryOperator",
    "SortSpec",
    # Projection
    "EntityProjection",
    "FieldNames",
    "NamingStrategy",
    "ProjectionResult",
    # Implementations
    "DbSettings",
    "MongoDBRepository",
    "DataContext",
    "FieldIndex",
    "IndexOption",
    "IndexType",
    # Audit
    "AuditHandler",
    "AuditMessage",
    "AuditMessageType",
    # Logging
    "logger",
]

__version__ = "0.1.0"
