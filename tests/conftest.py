# tests/conftest.py
import logging
from typing import List

import mongomock
import pytest

from docstore_repository.db_implementations.mongodb_context import DataContext
from docstore_repository.db_implementations.mongodb_repository import \
    MongoDBRepository
from docstore_repository.settings import DbSettings
from tests.models import Person

# Silence verbose loggers
logging.getLogger("pymongo").setLevel(logging.ERROR)

# --- Constants ---
TEST_MONGO_DB_NAME = "pytest_docstore_repo_db"


# --- Fixtures ---


@pytest.fixture
def settings() -> DbSettings:
    return DbSettings(_env_file=None, database=TEST_MONGO_DB_NAME)


@pytest.fixture
def mongo_client():
    """In-process MongoDB stand-in; every test gets an empty server."""
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def context(mongo_client, settings) -> DataContext:
    ctx = DataContext(mongo_client, settings=settings)
    yield ctx
    ctx.close()


@pytest.fixture
def repository(context) -> MongoDBRepository[Person]:
    return context.repository(Person)


@pytest.fixture
def people() -> List[Person]:
    return [
        Person(name="Alice", age=25, status="active"),
        Person(name="Bob", age=35, status="pending"),
        Person(name="Carol", age=45, status="inactive"),
        Person(name="Dave", age=55, status=None),
        Person(name="Eve", age=65, status="active"),
    ]


@pytest.fixture
def populated_repository(repository, people) -> MongoDBRepository[Person]:
    for person in people:
        repository.add(person)
    return repository
