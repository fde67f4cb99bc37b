# tests/database_implementations/test_context.py
from unittest.mock import MagicMock, patch

import pytest

from docstore_repository.db_implementations.mongodb_context import DataContext
from docstore_repository.db_implementations.mongodb_repository import \
    MongoDBRepository
from docstore_repository.settings import DbSettings
from tests.models import Person


class FakeSession:
    """Minimal stand-in for a pymongo ClientSession."""

    def __init__(self):
        self.in_transaction = False
        self.calls = []

    def start_transaction(self):
        self.in_transaction = True
        self.calls.append("start")

    def commit_transaction(self):
        self.in_transaction = False
        self.calls.append("commit")

    def abort_transaction(self):
        self.in_transaction = False
        self.calls.append("abort")

    def end_session(self):
        self.calls.append("end")


def make_client(replica_set: bool) -> MagicMock:
    client = MagicMock(name="client")
    client.admin.command.return_value = (
        {"isWritablePrimary": True, "setName": "rs0"}
        if replica_set
        else {"isWritablePrimary": True}
    )
    client.start_session.return_value = FakeSession()
    return client


@pytest.fixture
def no_env_settings() -> DbSettings:
    return DbSettings(_env_file=None, database=None)


def test_database_name_defaults_to_context_class(no_env_settings):
    class SalesContext(DataContext):
        pass

    client = make_client(False)
    assert DataContext(client, settings=no_env_settings).database_name == "DataContext"
    assert SalesContext(client, settings=no_env_settings).database_name == "SalesContext"
    assert DataContext(client, " sales ", no_env_settings).database_name == "sales"
    client.__getitem__.assert_called_with("sales")


def test_database_name_from_settings():
    settings = DbSettings(_env_file=None, database="configured")
    assert DataContext(make_client(False), settings=settings).database_name == "configured"


def test_client_is_required(no_env_settings):
    with pytest.raises(ValueError):
        DataContext(None, settings=no_env_settings)


def test_transactions_are_ignored_without_replica_set(no_env_settings):
    client = make_client(False)
    context = DataContext(client, settings=no_env_settings)

    context.begin_transaction()
    assert context.in_transaction is False
    assert context.session is None
    context.commit_changes()
    context.rollback_changes()
    client.start_session.assert_not_called()


def test_commit_on_replica_set(no_env_settings):
    client = make_client(True)
    context = DataContext(client, settings=no_env_settings)

    context.begin_transaction()
    assert context.in_transaction is True
    session = context.session
    context.commit_changes()
    assert context.in_transaction is False
    assert session.calls == ["start", "commit"]


def test_rollback_on_replica_set(no_env_settings):
    context = DataContext(make_client(True), settings=no_env_settings)
    context.begin_transaction()
    context.rollback_changes()
    assert context.session.calls == ["start", "abort"]


def test_begin_twice_starts_one_transaction(no_env_settings):
    client = make_client(True)
    context = DataContext(client, settings=no_env_settings)
    context.begin_transaction()
    context.begin_transaction()
    assert context.session.calls == ["start"]
    client.start_session.assert_called_once()


def test_replica_set_check_is_cached(no_env_settings):
    client = make_client(True)
    context = DataContext(client, settings=no_env_settings)
    assert context.is_replica_set() is True
    assert context.is_replica_set() is True
    client.admin.command.assert_called_once_with("hello")


def test_transaction_context_manager_commits(no_env_settings):
    context = DataContext(make_client(True), settings=no_env_settings)
    with context.transaction() as ctx:
        assert ctx is context
        assert context.in_transaction
    assert context.session.calls == ["start", "commit"]


def test_transaction_context_manager_rolls_back_and_reraises(no_env_settings):
    context = DataContext(make_client(True), settings=no_env_settings)
    with pytest.raises(KeyError):
        with context.transaction():
            raise KeyError("boom")
    assert context.session.calls == ["start", "abort"]


def test_close_aborts_open_transaction_and_ends_session(no_env_settings):
    context = DataContext(make_client(True), settings=no_env_settings)
    context.begin_transaction()
    session = context.session
    with context:
        pass
    assert session.calls == ["start", "abort", "end"]
    assert context.session is None


def test_repository_factory(no_env_settings):
    client = make_client(False)
    context = DataContext(client, settings=no_env_settings)
    repo = context.repository(Person, "people")
    assert isinstance(repo, MongoDBRepository)
    assert repo.context is context
    assert repo.collection_name == "people"


def test_from_settings_builds_client():
    settings = DbSettings(
        _env_file=None, connection_string="mongodb://db:27017", database="app", tz_aware=False
    )
    with patch(
        "docstore_repository.db_implementations.mongodb_context.MongoClient"
    ) as client_cls:
        context = DataContext.from_settings(settings)
    client_cls.assert_called_once_with("mongodb://db:27017", tz_aware=False)
    assert context.client is client_cls.return_value
    assert context.database_name == "app"
    assert context.settings is settings
