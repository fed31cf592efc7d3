"""
Test suite for buildsqlx.dml module.

Tests cover:
- insert / insert_batch: column order, flattened args, shape checks
- update / update_batch: SET and CASE WHEN rendering with the clause tail
- delete and replace
- Table statements (drop, truncate, rename)
"""

import logging

import pytest

from buildsqlx import DB, Op
from buildsqlx.exceptions import BatchShapeError, EmptyDataError, TableNotSetError

# ============================================================================
# UNIT TESTS - INSERT
# ============================================================================


@pytest.mark.smoke
def test_insert_single_row(db):
    sql, args = db.table("t").insert({"a": 1, "b": 2})
    assert sql == 'INSERT INTO "t" ("a", "b") VALUES (?, ?)'
    assert args == [1, 2]


@pytest.mark.unit
def test_insert_args_follow_column_order(db):
    """Test args line up with the rendered column order."""
    sql, args = db.table("t").insert({"b": "second", "a": "first", "c": None})
    assert sql == 'INSERT INTO "t" ("b", "a", "c") VALUES (?, ?, ?)'
    assert args == ["second", "first", None]


@pytest.mark.edge_case
def test_insert_empty_mapping_raises(db):
    with pytest.raises(EmptyDataError):
        db.table("t").insert({})


@pytest.mark.edge_case
def test_insert_without_table_raises():
    with pytest.raises(TableNotSetError):
        DB().insert({"a": 1})


@pytest.mark.unit
def test_insert_batch_renders_multi_row_values(db):
    rows = [
        {"foo": "foo foo foo", "bar": "bar bar bar", "baz": 123},
        {"foo": "foo foo foo foo", "bar": "bar bar bar bar", "baz": 1234},
        {"foo": "foo foo foo foo foo", "bar": "bar bar bar bar bar", "baz": 12345},
    ]
    sql, args = db.table("table1").insert_batch(rows)
    assert sql == 'INSERT INTO "table1" ("foo", "bar", "baz") VALUES (?, ?, ?), (?, ?, ?), (?, ?, ?)'
    assert args == [
        "foo foo foo", "bar bar bar", 123,
        "foo foo foo foo", "bar bar bar bar", 1234,
        "foo foo foo foo foo", "bar bar bar bar bar", 12345,
    ]


@pytest.mark.unit
def test_insert_batch_aligns_rows_to_first_row_order(db):
    """Test rows with the same keys in another order bind in first-row order."""
    sql, args = db.table("t").insert_batch([{"a": 1, "b": 2}, {"b": 4, "a": 3}])
    assert sql == 'INSERT INTO "t" ("a", "b") VALUES (?, ?), (?, ?)'
    assert args == [1, 2, 3, 4]


@pytest.mark.regression
def test_insert_batch_mismatched_row_raises(db, caplog):
    """Test a row with different columns is reported instead of ignored."""
    caplog.set_level(logging.WARNING, logger="buildsqlx.dml")
    with pytest.raises(BatchShapeError):
        db.table("t").insert_batch([{"a": 1, "b": 2}, {"a": 3, "c": 4}])
    assert "insert_batch row 1" in caplog.text


@pytest.mark.edge_case
@pytest.mark.parametrize("rows", [[], [{}]])
def test_insert_batch_empty_raises(db, rows):
    with pytest.raises(EmptyDataError):
        db.table("t").insert_batch(rows)


# ============================================================================
# UNIT TESTS - UPDATE
# ============================================================================


@pytest.mark.unit
def test_update_with_where(db):
    sql, args = db.table("posts").where("points", Op.GT, 3).update({"title": "awesome"})
    assert sql == 'UPDATE "posts" SET "title" = ? WHERE "points" > ?'
    assert args == ["awesome", 3]


@pytest.mark.regression
def test_update_renders_from_table(db):
    """Test UPDATE ... FROM includes the source table."""
    sql, args = (
        db.table("employees")
        .from_("accounts")
        .where("id", Op.EQ, 7)
        .update({"sales_count": 10, "active": True})
    )
    assert sql == 'UPDATE "employees" SET "sales_count" = ?, "active" = ? FROM "accounts" WHERE "id" = ?'
    assert args == [10, True, 7]


@pytest.mark.unit
def test_update_with_order_and_limit(db):
    sql, args = db.table("t").where("b", Op.EQ, 2).order_by("id").limit(1).update({"a": 1})
    assert sql == 'UPDATE "t" SET "a" = ? WHERE "b" = ? ORDER BY "t"."id" ASC LIMIT 1'
    assert args == [1, 2]


@pytest.mark.edge_case
def test_update_empty_mapping_raises(db):
    with pytest.raises(EmptyDataError):
        db.table("t").update({})


@pytest.mark.unit
def test_update_batch_single_key(db):
    sql, args = db.table("t").update_batch(
        {"id": [1, 2]},
        {"name": ["a", "b"], "age": [10, 20]},
    )
    assert sql == (
        'UPDATE "t" SET '
        '"name" = CASE WHEN "id" = ? THEN ? WHEN "id" = ? THEN ? ELSE "name" END, '
        '"age" = CASE WHEN "id" = ? THEN ? WHEN "id" = ? THEN ? ELSE "age" END'
    )
    assert args == [1, "a", 2, "b", 1, 10, 2, 20]


@pytest.mark.unit
def test_update_batch_composite_key(db):
    """Test each row is identified by every key column joined with AND."""
    sql, args = db.table("t").update_batch({"a": [1, 2], "b": [3, 4]}, {"c": [5, 6]})
    assert sql == (
        'UPDATE "t" SET "c" = CASE WHEN "a" = ? AND "b" = ? THEN ? '
        'WHEN "a" = ? AND "b" = ? THEN ? ELSE "c" END'
    )
    assert args == [1, 3, 5, 2, 4, 6]


@pytest.mark.regression
def test_update_batch_appends_clause_tail(db):
    sql, args = db.table("t").where("tenant", Op.EQ, 9).update_batch({"id": [1]}, {"v": ["x"]})
    assert sql == 'UPDATE "t" SET "v" = CASE WHEN "id" = ? THEN ? ELSE "v" END WHERE "tenant" = ?'
    assert args == [1, "x", 9]


@pytest.mark.edge_case
@pytest.mark.parametrize("where, update", [
    ({}, {"v": [1]}),
    ({"id": [1]}, {}),
    ({"id": []}, {"v": []}),
    ({"a": [1, 2], "b": [3]}, {"v": [1, 2]}),
    ({"id": [1, 2]}, {"v": [1]}),
])
def test_update_batch_bad_shape_raises(db, where, update):
    with pytest.raises(BatchShapeError):
        db.table("t").update_batch(where, update)


# ============================================================================
# UNIT TESTS - DELETE and REPLACE
# ============================================================================


@pytest.mark.unit
def test_delete_with_where(db):
    sql, args = db.table("posts").where("points", Op.GT, 3).delete()
    assert sql == 'DELETE FROM "posts" WHERE "points" > ?'
    assert args == [3]


@pytest.mark.unit
def test_delete_whole_table(db):
    assert db.table("posts").delete() == ('DELETE FROM "posts"', [])


@pytest.mark.unit
def test_replace_updates_every_inserted_column(db):
    sql, args = db.table("t").replace({"id": 1, "name": "a"}, "id")
    assert sql == (
        'INSERT INTO "t" ("id", "name") VALUES (?, ?) '
        'ON DUPLICATE KEY UPDATE "id" = excluded."id", "name" = excluded."name"'
    )
    assert args == [1, "a"]


@pytest.mark.edge_case
def test_replace_conflict_must_be_inserted(db):
    with pytest.raises(ValueError, match="conflict column"):
        db.table("t").replace({"name": "a"}, "id")


# ============================================================================
# UNIT TESTS - Table statements
# ============================================================================


@pytest.mark.unit
def test_table_statements(db):
    assert db.drop("t") == 'DROP TABLE "t"'
    assert db.drop_if_exists("t") == 'DROP TABLE IF EXISTS "t"'
    assert db.truncate("t") == 'TRUNCATE "t"'
    assert db.rename("old", "new") == 'ALTER TABLE "old" RENAME TO "new"'
