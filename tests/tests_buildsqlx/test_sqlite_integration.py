"""
Integration tests executing rendered statements on in-memory SQLite.

SQLite accepts double-quoted identifiers, '?' placeholders and
LIMIT offset,count, so SELECT and DML output can run unchanged through
SQLAlchemy's exec_driver_sql(). The driver checks that the number of bound
values matches the placeholders, which exercises arg ordering end to end.
"""

import pytest

from buildsqlx import DB, Op

pytestmark = pytest.mark.integration

ROWS = [
    {"id": 1, "title": "intro", "topic": "sql", "points": 5},
    {"id": 2, "title": "joins", "topic": "sql", "points": 12},
    {"id": 3, "title": "draft", "topic": "", "points": 1},
    {"id": 4, "title": "untagged", "topic": None, "points": 8},
    {"id": 5, "title": "indexes", "topic": "perf", "points": 20},
]


@pytest.fixture
def seeded(sqlite_engine, run_sql):
    """Engine whose posts table holds ROWS, inserted through insert_batch."""
    sql, args = DB().table("posts").insert_batch(ROWS)
    with sqlite_engine.begin() as conn:
        run_sql(conn, sql, args)
    return sqlite_engine


def test_insert_batch_then_count(seeded, run_sql):
    with seeded.connect() as conn:
        assert run_sql(conn, *DB().table("posts").count()).scalar() == len(ROWS)


def test_select_with_order_limit_offset(seeded, run_sql):
    sql, args = (
        DB().table("posts")
        .select("title")
        .where("points", Op.GT, 3)
        .order_by("points", "DESC")
        .limit(2)
        .offset(1)
        .query()
    )
    with seeded.connect() as conn:
        titles = [row[0] for row in run_sql(conn, sql, args)]
    assert titles == ["joins", "untagged"]


def test_where_in_or_between(seeded, run_sql):
    sql, args = (
        DB().table("posts")
        .select("id")
        .where_in("topic", "perf", "none")
        .or_where_between("points", 1, 5)
        .order_by("id")
        .query()
    )
    with seeded.connect() as conn:
        assert [row[0] for row in run_sql(conn, sql, args)] == [1, 3, 5]


def test_where_empty_matches_blank_and_null(seeded, run_sql):
    sql, args = DB().table("posts").select("id").where_empty("topic").order_by("id").query()
    with seeded.connect() as conn:
        assert [row[0] for row in run_sql(conn, sql, args)] == [3, 4]


def test_group_by_having(seeded, run_sql):
    sql, args = (
        DB().table("posts")
        .select("topic", "COUNT(id)")
        .where_not_null("topic")
        .group_by("topic")
        .having("topic", Op.NEQ, "")
        .order_by_raw("topic")
        .query()
    )
    with seeded.connect() as conn:
        assert [tuple(row) for row in run_sql(conn, sql, args)] == [("perf", 1), ("sql", 2)]


def test_exists(seeded, run_sql):
    with seeded.connect() as conn:
        found = run_sql(conn, *DB().table("posts").where("points", Op.GTE, 20).exists()).scalar()
        missing = run_sql(conn, *DB().table("posts").where("points", Op.GT, 20).exists()).scalar()
    assert (found, missing) == (1, 0)


def test_union_with_args(seeded, run_sql):
    sql, args = (
        DB().table("posts").select("id").where("points", Op.LT, 2).union()
        .table("posts").select("id").where("points", Op.GT, 15)
        .query()
    )
    with seeded.connect() as conn:
        assert sorted(row[0] for row in run_sql(conn, sql, args)) == [3, 5]


def test_update_and_delete(seeded, run_sql):
    with seeded.begin() as conn:
        run_sql(conn, *DB().table("posts").where("topic", Op.EQ, "sql").update({"points": 0}))
        run_sql(conn, *DB().table("posts").where_like("title", "dra%").delete())

    with seeded.connect() as conn:
        total = run_sql(conn, *DB().table("posts").where("points", Op.EQ, 0).count()).scalar()
        remaining = run_sql(conn, *DB().table("posts").count()).scalar()
    assert (total, remaining) == (2, len(ROWS) - 1)


def test_update_batch_case_when(seeded, run_sql):
    sql, args = DB().table("posts").update_batch(
        {"id": [1, 2]},
        {"title": ["one", "two"], "points": [100, 200]},
    )
    with seeded.begin() as conn:
        run_sql(conn, sql, args)

    with seeded.connect() as conn:
        rows = run_sql(conn, *DB().table("posts").select("id", "title", "points").order_by("id").limit(3).query())
        assert [tuple(row) for row in rows] == [(1, "one", 100), (2, "two", 200), (3, "draft", 1)]
