"""
Audit trail persisted in the document store.

`AuditHandler` is a regular `logging.Handler`: attach it to any logger and
every record it receives is stored as an `AuditMessage`. A failed write
never propagates into the code being audited; it is reported through
`Handler.handleError` instead.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field

from docstore_repository.base.entity import EntityBase
from docstore_repository.db_implementations.mongodb_context import DataContext
from docstore_repository.db_implementations.mongodb_indexes import (FieldIndex,
                                                                    IndexType)

log = logging.getLogger(__name__)

AUDIT_COLLECTION = "AuditMessage"
TYPE_INDEX_NAME = "idx_types"


class AuditMessageType(Enum):
    ERROR = "Error"
    INFO = "Info"
    EXCEPTION = "Exception"
    WARNING = "Warning"
    DEBUG = "Debug"


class AuditMessage(EntityBase):
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message: str = ""
    type: AuditMessageType = AuditMessageType.INFO


def message_type_for(record: logging.LogRecord) -> AuditMessageType:
    if record.exc_info and record.exc_info[0] is not None:
        return AuditMessageType.EXCEPTION
    if record.levelno >= logging.ERROR:
        return AuditMessageType.ERROR
    if record.levelno >= logging.WARNING:
        return AuditMessageType.WARNING
    if record.levelno >= logging.INFO:
        return AuditMessageType.INFO
    return AuditMessageType.DEBUG


class AuditHandler(logging.Handler):
    """Stores log records as `AuditMessage` documents."""

    def __init__(
        self,
        context: DataContext,
        collection_name: Optional[str] = AUDIT_COLLECTION,
        level: int = logging.NOTSET,
    ):
        if context is None:
            raise ValueError("context is required")
        super().__init__(level)
        self._repository = context.repository(AuditMessage, collection_name)
        self._repository.index_option.create_index(
            TYPE_INDEX_NAME, [FieldIndex("type", IndexType.TEXT)]
        )
        self._emitting = False

    @property
    def repository(self):
        return self._repository

    def emit(self, record: logging.LogRecord) -> None:
        # The repository logs too; ignore records raised while storing one.
        if self._emitting:
            return
        self._emitting = True
        try:
            message = AuditMessage(
                date=datetime.fromtimestamp(record.created, timezone.utc),
                message=self.format(record),
                type=message_type_for(record),
            )
            self._repository.add(message)
        except Exception:
            self.handleError(record)
        finally:
            self._emitting = False
