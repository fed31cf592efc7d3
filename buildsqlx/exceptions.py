"""
===================================
Exceptions raised by the builders.
===================================

Two families are kept apart:

- ContractViolationError: programmer errors (no table set, unknown operator,
  column modifier before any column). These abort statement construction
  and are not meant to be recovered from.
- Reported errors (SchemaError, BatchShapeError, EmptyDataError): the input
  describes a statement that cannot be rendered; the caller decides what to do.
"""


class BuildSqlxError(Exception):
    """Base class for all builder errors."""
    pass


class ContractViolationError(BuildSqlxError):
    """Exception raised when the builder API is used out of contract."""
    pass


class TableNotSetError(ContractViolationError):
    """Exception raised when a terminal call runs before table() was called."""

    def __init__(self, message: str = "sql: there was no table() call with table name set"):
        super().__init__(message)


class InvalidOperatorError(ContractViolationError, ValueError):
    """Exception raised for an operator outside the known set."""
    pass


class NoColumnError(ContractViolationError, IndexError):
    """Exception raised when a column modifier targets an empty table."""
    pass


class SchemaError(BuildSqlxError):
    """Exception raised when a table definition cannot be rendered."""
    pass


class AutoIncrementError(SchemaError):
    """Exception raised when a table declares more than one auto increment column."""

    def __init__(self, message: str = "sql: the table only support one increments column"):
        super().__init__(message)


class BatchShapeError(BuildSqlxError, ValueError):
    """Exception raised when batch rows or columns do not line up."""
    pass


class EmptyDataError(BuildSqlxError, ValueError):
    """Exception raised when a write statement receives no data."""
    pass
