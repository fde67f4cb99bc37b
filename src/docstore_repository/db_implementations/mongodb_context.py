# src/docstore_repository/db_implementations/mongodb_context.py

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Type, TypeVar

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database

from docstore_repository.base.entity import EntityBase
from docstore_repository.db_implementations.mongodb_repository import \
    MongoDBRepository
from docstore_repository.settings import DbSettings

T = TypeVar("T", bound=EntityBase)


class DataContext:
    """
    One logical unit of work against one database.

    Transactions are only started on replica-set deployments; elsewhere
    `begin_transaction`, `commit_changes` and `rollback_changes` do
    nothing and every operation runs without a session. A context is not
    safe for concurrent use: give each concurrent unit of work its own.
    """

    def __init__(
        self,
        client: MongoClient,
        database: Optional[str] = None,
        settings: Optional[DbSettings] = None,
    ):
        """
        Args:
            client: A pymongo client (or compatible).
            database: Database name. Defaults to `settings.database`, then
                to the context class name.
            settings: Connection settings; only the text index defaults are
                read from it here.
        """
        if client is None:
            raise ValueError("client is required")
        self._settings = settings if settings is not None else DbSettings()
        database = (database or "").strip() or (self._settings.database or "").strip()
        self._database_name = database or type(self).__name__

        self._client = client
        self._database: Database = client[self._database_name]
        self._session: Optional[ClientSession] = None
        self._in_transaction = False
        self._is_replica_set: Optional[bool] = None

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{self._database_name}]"
        )
        self._logger.debug(f"Context created for database '{self._database_name}'.")

    @classmethod
    def from_settings(cls, settings: Optional[DbSettings] = None) -> "DataContext":
        """Builds a client from `settings` (or the environment) and wraps it."""
        settings = settings if settings is not None else DbSettings()
        client = MongoClient(settings.connection_string, tz_aware=settings.tz_aware)
        return cls(client, settings.database, settings)

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def database(self) -> Database:
        return self._database

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def settings(self) -> DbSettings:
        return self._settings

    @property
    def session(self) -> Optional[ClientSession]:
        """The session of the running transaction, if any."""
        return self._session

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def is_replica_set(self) -> bool:
        if self._is_replica_set is None:
            hello = self._client.admin.command("hello")
            self._is_replica_set = "setName" in hello
            self._logger.debug(f"Replica set deployment: {self._is_replica_set}")
        return self._is_replica_set

    # --- Transactions ---

    def begin_transaction(self) -> None:
        if not self.is_replica_set():
            self._logger.debug("Not a replica set; begin_transaction ignored.")
            return
        if self._session is None:
            self._session = self._client.start_session()
        if not self._session.in_transaction:
            self._session.start_transaction()
            self._in_transaction = True
            self._logger.info("Transaction started.")

    def commit_changes(self) -> None:
        if self._session is not None and self._session.in_transaction:
            self._session.commit_transaction()
            self._in_transaction = False
            self._logger.info("Transaction committed.")

    def rollback_changes(self) -> None:
        if self._session is not None and self._session.in_transaction:
            self._session.abort_transaction()
            self._in_transaction = False
            self._logger.info("Transaction rolled back.")

    @contextmanager
    def transaction(self) -> Iterator["DataContext"]:
        """Commits on normal exit, rolls back and re-raises on error."""
        self.begin_transaction()
        try:
            yield self
        except Exception:
            self.rollback_changes()
            raise
        self.commit_changes()

    def close(self) -> None:
        if self._session is not None:
            self.rollback_changes()
            self._session.end_session()
            self._session = None

    def __enter__(self) -> "DataContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Repositories ---

    def repository(
        self, entity_type: Type[T], collection_name: Optional[str] = None
    ) -> MongoDBRepository[T]:
        """Creates a repository for `entity_type` already bound to this context."""
        return MongoDBRepository(entity_type, collection_name, context=self)
