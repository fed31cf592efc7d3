"""
Shared fixtures for buildsqlx module tests.

Key fixtures:
- posts_query: builder preloaded with a filtered, ordered, paginated SELECT
- sqlite_engine: in-memory SQLite engine with a seeded "posts" table
- run_sql: executes a rendered (sql, args) pair on a SQLAlchemy connection
"""

import pytest
from sqlalchemy import create_engine

from buildsqlx import DB, Op
from buildsqlx.connection import clear_connections


@pytest.fixture
def posts_query():
    """Builder describing a SELECT with where, order, limit and offset."""
    return (
        DB().table("posts")
        .select("title", "body")
        .where("points", Op.GT, 3)
        .order_by("points", "DESC")
        .limit(15)
        .offset(5)
    )


@pytest.fixture(autouse=True)
def fresh_connections():
    """Keep the driver registry empty between tests."""
    clear_connections()
    yield
    clear_connections()


@pytest.fixture
def run_sql():
    """Execute a rendered statement with its args bound positionally."""
    def run(conn, sql, args):
        if args:
            return conn.exec_driver_sql(sql, tuple(args))
        return conn.exec_driver_sql(sql)

    return run


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with an empty "posts" table."""
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        conn.exec_driver_sql(
            'CREATE TABLE "posts" ('
            '"id" INTEGER PRIMARY KEY, '
            '"title" TEXT, '
            '"topic" TEXT, '
            '"points" INTEGER)'
        )
    yield engine
    engine.dispose()
