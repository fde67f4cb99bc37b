# tests/base/test_projection.py

import pytest

from docstore_repository.base.projection import (EntityProjection, FieldNames,
                                                 NamingStrategy)


@pytest.fixture
def row() -> EntityProjection:
    projection = EntityProjection.create()
    projection.set("name", "Alice")
    projection.set("age", 30)
    return projection


def test_set_and_get(row: EntityProjection):
    assert row.get("name") == "Alice"
    assert row["age"] == 30
    assert row.contains("name")
    assert "age" in row
    assert len(row) == 2


def test_missing_names_read_as_absent(row: EntityProjection):
    assert row.get("missing") is None
    assert row.get("missing", "fallback") == "fallback"
    assert not row.contains("missing")
    with pytest.raises(KeyError):
        row["missing"]


def test_remove_tombstones_without_shrinking_table(row: EntityProjection):
    table_length = row.field_names.field_count
    assert row.remove("name") is True
    assert not row.contains("name")
    assert row.get("name") is None
    assert row.field_names.field_count == table_length
    assert len(row) == 1

    # Removing again is a no-op
    assert row.remove("name") is False

    row.set("name", "Bob")
    assert row.contains("name")
    assert row["name"] == "Bob"
    assert row.field_names.field_count == table_length


def test_del_item(row: EntityProjection):
    del row["age"]
    assert "age" not in row
    with pytest.raises(KeyError):
        del row["age"]


def test_iteration_follows_table_order_and_skips_tombstones(row: EntityProjection):
    row.set("city", "Paris")
    row.remove("age")
    assert list(row) == ["name", "city"]
    assert row.to_dict() == {"name": "Alice", "city": "Paris"}


def test_none_is_a_live_value(row: EntityProjection):
    row.set("nickname", None)
    assert row.contains("nickname")
    assert len(row) == 3


def test_add_fails_on_live_key_but_succeeds_after_remove(row: EntityProjection):
    with pytest.raises(ValueError):
        row.add("name", "Other")
    row.remove("name")
    row.add("name", "Other")
    assert row["name"] == "Other"


def test_document_key_is_exposed_as_id():
    row = EntityProjection.create()
    row.set("_id", "abc")
    assert list(row) == ["Id"]
    assert row.get("_id") == "abc"
    assert row.get("Id") == "abc"


def test_camel_case_strategy_resolves_on_set_and_lookup():
    row = EntityProjection.create(naming_strategy=NamingStrategy.CAMEL_CASE)
    row.set("FirstName", "Ann")
    row.set("_id", "abc")
    assert list(row) == ["firstName", "id"]
    assert row["FirstName"] == "Ann"
    assert row["firstName"] == "Ann"
    assert row["_id"] == "abc"


def test_rows_share_the_name_table():
    names = FieldNames()
    first = EntityProjection.create(names)
    second = EntityProjection.create(names)
    first.set("name", "Alice")
    first.set("age", 30)
    second.set("age", 40)

    assert names.fields == ["name", "age"]
    # `second` grew past `name` without setting it
    assert not second.contains("name")
    assert second.to_dict() == {"age": 40}

    # A name added through `second` is absent in `first` until set there
    second.set("city", "Lyon")
    assert not first.contains("city")
    first.set("city", "Nice")
    assert first["city"] == "Nice"
    assert names.field_count == 3


def test_clear_tombstones_everything(row: EntityProjection):
    row.clear()
    assert len(row) == 0
    assert row.field_names.field_count == 2


def test_constructor_rejects_missing_backing_structures():
    with pytest.raises(ValueError):
        EntityProjection(None, [])
    with pytest.raises(ValueError):
        EntityProjection(FieldNames(), None)
    with pytest.raises(ValueError):
        FieldNames(None)


def test_field_names_rejects_duplicates():
    names = FieldNames(["a"])
    with pytest.raises(ValueError):
        names.add_field("a")
    assert names.add_field("b") == 1
    assert names.index_of("b") == 1
    assert names.index_of("missing") == -1
    assert "a" in names
    assert len(names) == 2


@pytest.mark.parametrize(
    "token, expected",
    [
        ("camelcase", NamingStrategy.CAMEL_CASE),
        (" CamelCase ", NamingStrategy.CAMEL_CASE),
        ("default", NamingStrategy.DEFAULT),
        ("anything", NamingStrategy.DEFAULT),
        (None, NamingStrategy.DEFAULT),
    ],
)
def test_naming_strategy_parse(token, expected):
    assert NamingStrategy.parse(token) is expected
