"""
===========================================
Fluent parameterized SQL statement builder.
===========================================

This package renders SQL text plus the ordered list of values bound to its
``?`` placeholders from chained builder calls. Nothing is executed: the
output is meant to be handed to a database driver.

The package follows a clear organization:
    - text_builder.py: TextBuilder accumulator and the Op operator set
    - query_builder.py: QueryState and the chainable DB builder (SELECT)
    - dml.py: INSERT/UPDATE/DELETE/upsert and batch statements
    - ddl.py: CREATE TABLE / ALTER TABLE through Table and Column
    - connection.py: driver registry and builder checkout pool
    - exceptions.py: error hierarchy

Example:
    >>> from buildsqlx import DB, Op
    >>>
    >>> db = DB()
    >>> db.table('t').where_in('id', 1, 2, 3).query()
    ('SELECT * FROM "t" WHERE "id" IN (?, ?, ?)', [1, 2, 3])
    >>>
    >>> db.table('users').insert({'name': 'ann'})
    ('INSERT INTO "users" ("name") VALUES (?)', ['ann'])
"""

__version__ = "1.0.0"
__all__ = [
    # Builders
    'DB', 'QueryState', 'TextBuilder', 'Op',
    # Schema
    'Table', 'Column', 'ColumnSpec',
    # Connections
    'Connection', 'get_connection', 'clear_connections',
    # Errors
    'BuildSqlxError', 'ContractViolationError', 'TableNotSetError',
    'InvalidOperatorError', 'NoColumnError', 'SchemaError',
    'AutoIncrementError', 'BatchShapeError', 'EmptyDataError',
]

from .connection import Connection, clear_connections, get_connection
from .ddl import Column, ColumnSpec, Table
from .exceptions import (
    AutoIncrementError,
    BatchShapeError,
    BuildSqlxError,
    ContractViolationError,
    EmptyDataError,
    InvalidOperatorError,
    NoColumnError,
    SchemaError,
    TableNotSetError,
)
from .query_builder import DB, QueryState
from .text_builder import Op, TextBuilder
