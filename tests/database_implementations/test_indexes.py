# tests/database_implementations/test_indexes.py
from unittest.mock import MagicMock

import pytest
from pymongo import ASCENDING, DESCENDING, TEXT

from docstore_repository.db_implementations.mongodb_indexes import (
    FieldIndex, IndexOption, IndexType)


@pytest.fixture
def collection() -> MagicMock:
    collection = MagicMock(name="collection")
    collection.create_index.side_effect = lambda keys, **options: options["name"]
    return collection


def test_text_index_uses_defaults(collection):
    created = IndexOption(collection).create_index(
        "idx_text", [FieldIndex("title", IndexType.TEXT), FieldIndex("body", IndexType.TEXT)]
    )
    assert created == "idx_text"
    collection.create_index.assert_called_once_with(
        [("title", TEXT), ("body", TEXT)],
        name="idx_text",
        default_language="spanish",
        textIndexVersion=3,
    )


def test_text_index_extended_options_are_case_insensitive(collection):
    IndexOption(collection).create_index(
        "idx_text",
        [FieldIndex("title", IndexType.TEXT)],
        unique=True,
        extended_options={"DefaultLanguage": "english", "TEXTINDEXVERSION": "2"},
    )
    collection.create_index.assert_called_once_with(
        [("title", TEXT)],
        name="idx_text",
        default_language="english",
        textIndexVersion=2,
    )


def test_text_index_defaults_come_from_constructor(collection):
    IndexOption(collection, default_language="french", text_index_version=2).create_index(
        "idx_text", [FieldIndex("title", IndexType.TEXT)],
        extended_options={"textIndexVersion": "not a number"},
    )
    _, kwargs = collection.create_index.call_args
    assert kwargs["default_language"] == "french"
    assert kwargs["textIndexVersion"] == 2


def test_compound_index(collection):
    IndexOption(collection).create_index(
        "idx_name_age",
        [FieldIndex(" name "), FieldIndex("age", IndexType.DESCENDING)],
        unique=True,
    )
    collection.create_index.assert_called_once_with(
        [("name", ASCENDING), ("age", DESCENDING)], name="idx_name_age", unique=True
    )


def test_get_indexes(collection):
    collection.list_indexes.return_value = iter([{"name": "_id_"}])
    assert IndexOption(collection).get_indexes() == [{"name": "_id_"}]


@pytest.mark.parametrize("name", [None, "", "   "])
def test_field_index_requires_name(name):
    with pytest.raises(ValueError):
        FieldIndex(name)


def test_create_index_validates_arguments(collection):
    option = IndexOption(collection)
    with pytest.raises(ValueError):
        option.create_index(" ", [FieldIndex("a")])
    with pytest.raises(ValueError):
        option.create_index("idx", [])
    collection.create_index.assert_not_called()


def test_repository_exposes_index_option(repository, context):
    repository.index_option.create_index("idx_name", [FieldIndex("name")], unique=True)
    names = [index["name"] for index in repository.index_option.get_indexes()]
    assert "idx_name" in names
