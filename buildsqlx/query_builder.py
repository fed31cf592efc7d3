"""
=====================================
Fluent SELECT builder and query state.
=====================================

This module holds the mutable state a statement is described with and the
clause-assembly algorithm that turns it into text.

Classes:
- QueryState: table, columns, joins, predicates, grouping, ordering,
  pagination, unions and lock marker for one statement
- DB: chainable API over a QueryState; write statements come from DmlMixin
  (dml.py) and schema statements from DdlMixin (ddl.py)

Clause order for every statement tail is fixed:
    joins, WHERE, GROUP BY, HAVING, ORDER BY, LIMIT, FOR UPDATE

Usage:
    from buildsqlx import DB, Op

    sql, args = (
        DB().table('posts')
        .select('title', 'body')
        .where('points', Op.GT, 3)
        .order_by('points', 'DESC')
        .limit(15)
        .offset(5)
        .query()
    )
    # SELECT "title", "body" FROM "posts" WHERE "points" > ?
    #   ORDER BY "posts"."points" DESC LIMIT 5,15      args == [3]
"""

import re
from typing import Any, List, Optional, Tuple

from buildsqlx.ddl import DdlMixin
from buildsqlx.dml import DmlMixin
from buildsqlx.exceptions import TableNotSetError
from buildsqlx.text_builder import QUOTE, Op, TextBuilder, is_value_list
from core.config import config
from core.logger import get_logger

logger = get_logger(__name__)

JOIN_INNER = "INNER"
JOIN_LEFT = "LEFT"
JOIN_RIGHT = "RIGHT"
JOIN_FULL = "FULL"
JOIN_FULL_OUTER = "FULL OUTER"

LOCK_FOR_UPDATE = "FOR UPDATE"

_ALIAS_TOKEN = re.compile(r"\b(AS|as)\b")


def _expand_values(values: Tuple[Any, ...]) -> List[Any]:
    """Accept where_in('id', 1, 2, 3) as well as a single iterable such as a list or range."""
    if len(values) == 1 and is_value_list(values[0]):
        return list(values[0])
    return list(values)


class QueryState:
    """State of one statement under construction.

    Attributes:
        table: Target table name
        columns: Selected columns, '*' by default
        joins: Rendered join fragments in the order they were added
        where: Predicate accumulator, already carrying WHERE/AND/OR tokens
        group_by: GROUP BY expression
        having: HAVING accumulator
        order_by: Ordered (column, direction) pairs
        order_by_raw: Raw ORDER BY expression, used when order_by is empty
        limit: LIMIT value, <= 0 means unset
        offset: Offset value, <= 0 means unset
        unions: Captured (text, args) SELECT branches
        union_all: Join every branch with UNION ALL instead of UNION
        lock: Lock clause appended last
        from_table: Source table for UPDATE ... FROM
    """

    def __init__(self):
        self.unions: List[Tuple[str, List[Any]]] = []
        self.union_all = False
        self.reset(keep_union=False)

    def reset(self, keep_union: bool = True) -> None:
        """Restore defaults.

        Args:
            keep_union: Keep captured union branches and the UNION ALL flag,
                so a union chain can move on to its next table
        """
        self.table = ""
        self.columns: List[str] = ["*"]
        self.joins: List[str] = []
        self.where = TextBuilder()
        self.group_by: Optional[str] = None
        self.having = TextBuilder()
        self.order_by: List[Tuple[str, str]] = []
        self.order_by_raw: Optional[str] = None
        self.limit = 0
        self.offset = 0
        self.lock: Optional[str] = None
        self.from_table: Optional[str] = None
        if not keep_union:
            self.unions = []
            self.union_all = False

    def clone(self) -> "QueryState":
        """Return a structural copy sharing no mutable state with this one."""
        copy = QueryState.__new__(QueryState)
        copy.table = self.table
        copy.columns = list(self.columns)
        copy.joins = list(self.joins)
        copy.where = self.where.clone()
        copy.group_by = self.group_by
        copy.having = self.having.clone()
        copy.order_by = list(self.order_by)
        copy.order_by_raw = self.order_by_raw
        copy.limit = self.limit
        copy.offset = self.offset
        copy.lock = self.lock
        copy.from_table = self.from_table
        copy.unions = [(text, list(args)) for text, args in self.unions]
        copy.union_all = self.union_all
        return copy

    def require_table(self) -> str:
        """Return the table name.

        Raises:
            TableNotSetError: If no table was set
        """
        if not self.table:
            raise TableNotSetError()
        return self.table

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def write_columns(sb: TextBuilder, columns: List[str]) -> None:
        """Write the select list.

        Wildcards and expressions (anything containing a quote, a
        parenthesis or an AS alias) are written verbatim, plain names are
        quoted.
        """
        for i, col in enumerate(columns):
            if i > 0:
                sb.comma()
            if col == "*" or col.endswith(".*"):
                sb.write(col)
            elif QUOTE in col or "(" in col or _ALIAS_TOKEN.search(col):
                sb.write(col)
            else:
                sb.identifier(col)

    def write_order_by(self, sb: TextBuilder) -> None:
        if self.order_by:
            sb.write(" ORDER BY ")
            for i, (column, direction) in enumerate(self.order_by):
                if i > 0:
                    sb.comma()
                sb.qualified_identifier(self.table, column).pad().write(direction)
        elif self.order_by_raw:
            sb.write(" ORDER BY ").write(self.order_by_raw)

    def write_tail(self, sb: TextBuilder) -> None:
        """Write every clause that follows the statement head."""
        for join in self.joins:
            sb.write(join)

        if self.where:
            sb.extend(self.where)

        if self.group_by:
            sb.write(" GROUP BY ").identifier(self.group_by)

        if self.having:
            sb.write(" HAVING ").extend(self.having)

        self.write_order_by(sb)

        if self.limit > 0:
            sb.write(" LIMIT ")
            if self.offset > 0:
                sb.write(str(self.offset)).write(",")
            sb.write(str(self.limit))

        if self.lock:
            sb.pad().write(self.lock)

    def build_select(self, columns: Optional[List[str]] = None) -> TextBuilder:
        """Render a SELECT for the current state.

        Args:
            columns: Select list override (used by aggregates), defaults to
                the configured columns

        Returns:
            Fresh TextBuilder holding the statement and its args
        """
        table = self.require_table()
        sb = TextBuilder()
        sb.write("SELECT ")
        self.write_columns(sb, self.columns if columns is None else columns)
        sb.write(" FROM ").identifier(table)
        self.write_tail(sb)
        return sb

    def build_query(self) -> TextBuilder:
        """Render the SELECT preceded by any captured union branches."""
        self.require_table()
        glue = " UNION ALL " if self.union_all else " UNION "
        sb = TextBuilder()
        for text, args in self.unions:
            sb.write(text).params(*args).write(glue)
        return sb.extend(self.build_select())

    def build_exists(self) -> TextBuilder:
        """Render SELECT EXISTS (SELECT 1 FROM ...) from a clone of this state."""
        probe = self.clone()
        table = probe.require_table()

        def probe_body(b: TextBuilder) -> None:
            b.write("SELECT 1 FROM ").identifier(table)
            probe.write_tail(b)

        return TextBuilder().write("SELECT EXISTS ").nested(probe_body)


class DB(DmlMixin, DdlMixin):
    """Chainable statement builder.

    Configuration calls mutate the underlying QueryState and return the
    builder; terminal calls (query, exists, count..., insert, update,
    delete, create_table...) render the statement without changing state, so
    rendering twice gives the same result.

    An instance must not be shared between threads while a statement is being
    described; use Connection.checkout() to get an exclusive one.

    Attributes:
        connection: Owning Connection, if the builder came from one
        builder: QueryState the calls operate on
    """

    def __init__(self, connection=None):
        self.connection = connection
        self.builder = QueryState()

    @property
    def target(self) -> str:
        """Driver name of the owning connection."""
        if self.connection is not None:
            return self.connection.driver
        return config.driver

    # ------------------------------------------------------------------
    # Table and columns
    # ------------------------------------------------------------------

    def table(self, name: str) -> "DB":
        """Reset the builder and target a new table.

        Union branches captured with union()/union_all() survive the reset.
        """
        self.builder.reset()
        self.builder.table = name
        return self

    def select(self, *columns: str) -> "DB":
        self.builder.columns = list(columns)
        return self

    def add_select(self, *columns: str) -> "DB":
        self.builder.columns.extend(columns)
        return self

    def select_raw(self, raw: str) -> "DB":
        self.builder.columns = [raw]
        return self

    def from_(self, table: str) -> "DB":
        """Set the source table of an UPDATE ... FROM statement."""
        self.builder.from_table = table
        return self

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def _join(self, join_type: str, table: str, left: str, operator: str, right: str) -> "DB":
        self.builder.joins.append(f" {join_type} JOIN {table} ON {left} {operator} {right}")
        return self

    def inner_join(self, table: str, left: str, operator: str, right: str) -> "DB":
        return self._join(JOIN_INNER, table, left, operator, right)

    def left_join(self, table: str, left: str, operator: str, right: str) -> "DB":
        return self._join(JOIN_LEFT, table, left, operator, right)

    def right_join(self, table: str, left: str, operator: str, right: str) -> "DB":
        return self._join(JOIN_RIGHT, table, left, operator, right)

    def full_join(self, table: str, left: str, operator: str, right: str) -> "DB":
        return self._join(JOIN_FULL, table, left, operator, right)

    def full_outer_join(self, table: str, left: str, operator: str, right: str) -> "DB":
        return self._join(JOIN_FULL_OUTER, table, left, operator, right)

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def _where(self, conjunction: str) -> TextBuilder:
        """Write the connector for the next predicate and return the accumulator.

        The first predicate always opens the clause with WHERE.
        """
        where = self.builder.where
        if where:
            where.write(f" {conjunction} ")
        else:
            where.write(" WHERE ")
        return where

    def _predicate(self, conjunction: str, column: str, op, value: Any = None) -> None:
        """Render the predicate first so a rejected operand leaves WHERE untouched."""
        clause = TextBuilder().predicate(column, op, value)
        self._where(conjunction).extend(clause)

    def where_raw(self, raw: str, *values: Any) -> "DB":
        """Append a raw predicate; values bind to the '?' it already contains."""
        self._where("AND").write(raw).params(*values)
        return self

    def where(self, column: str, op, value: Any = None) -> "DB":
        self._predicate("AND", column, op, value)
        return self

    def and_where(self, column: str, op, value: Any = None) -> "DB":
        self._predicate("AND", column, op, value)
        return self

    def or_where(self, column: str, op, value: Any = None) -> "DB":
        self._predicate("OR", column, op, value)
        return self

    def where_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("AND", column, Op.BETWEEN, (low, high))
        return self

    def and_where_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("AND", column, Op.BETWEEN, (low, high))
        return self

    def or_where_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("OR", column, Op.BETWEEN, (low, high))
        return self

    def where_not_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("AND", column, Op.NOT_BETWEEN, (low, high))
        return self

    def and_where_not_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("AND", column, Op.NOT_BETWEEN, (low, high))
        return self

    def or_where_not_between(self, column: str, low: Any, high: Any) -> "DB":
        self._predicate("OR", column, Op.NOT_BETWEEN, (low, high))
        return self

    def where_in(self, column: str, *values: Any) -> "DB":
        self._predicate("AND", column, Op.IN, _expand_values(values))
        return self

    def and_where_in(self, column: str, *values: Any) -> "DB":
        self._predicate("AND", column, Op.IN, _expand_values(values))
        return self

    def or_where_in(self, column: str, *values: Any) -> "DB":
        self._predicate("OR", column, Op.IN, _expand_values(values))
        return self

    def where_not_in(self, column: str, *values: Any) -> "DB":
        self._predicate("AND", column, Op.NOT_IN, _expand_values(values))
        return self

    def and_where_not_in(self, column: str, *values: Any) -> "DB":
        self._predicate("AND", column, Op.NOT_IN, _expand_values(values))
        return self

    def or_where_not_in(self, column: str, *values: Any) -> "DB":
        self._predicate("OR", column, Op.NOT_IN, _expand_values(values))
        return self

    def where_null(self, column: str) -> "DB":
        self._predicate("AND", column, Op.IS_NULL)
        return self

    def and_where_null(self, column: str) -> "DB":
        self._predicate("AND", column, Op.IS_NULL)
        return self

    def or_where_null(self, column: str) -> "DB":
        self._predicate("OR", column, Op.IS_NULL)
        return self

    def where_not_null(self, column: str) -> "DB":
        self._predicate("AND", column, Op.NOT_NULL)
        return self

    def and_where_not_null(self, column: str) -> "DB":
        self._predicate("AND", column, Op.NOT_NULL)
        return self

    def or_where_not_null(self, column: str) -> "DB":
        self._predicate("OR", column, Op.NOT_NULL)
        return self

    def where_like(self, column: str, pattern: str) -> "DB":
        self._predicate("AND", column, Op.LIKE, pattern)
        return self

    def and_where_like(self, column: str, pattern: str) -> "DB":
        self._predicate("AND", column, Op.LIKE, pattern)
        return self

    def or_where_like(self, column: str, pattern: str) -> "DB":
        self._predicate("OR", column, Op.LIKE, pattern)
        return self

    def where_not_like(self, column: str, pattern: str) -> "DB":
        self._predicate("AND", column, Op.NOT_LIKE, pattern)
        return self

    def and_where_not_like(self, column: str, pattern: str) -> "DB":
        self._predicate("AND", column, Op.NOT_LIKE, pattern)
        return self

    def or_where_not_like(self, column: str, pattern: str) -> "DB":
        self._predicate("OR", column, Op.NOT_LIKE, pattern)
        return self

    @staticmethod
    def _empty_check(column: str):
        def build(b: TextBuilder) -> None:
            b.predicate(column, Op.EQ, "").write(" OR ").predicate(column, Op.IS_NULL)
        return build

    def where_empty(self, column: str) -> "DB":
        """Match rows where column is '' or NULL."""
        self._where("AND").nested(self._empty_check(column))
        return self

    def and_where_empty(self, column: str) -> "DB":
        self._where("AND").nested(self._empty_check(column))
        return self

    def or_where_empty(self, column: str) -> "DB":
        self._where("OR").nested(self._empty_check(column))
        return self

    # ------------------------------------------------------------------
    # Grouping, ordering, pagination, locking
    # ------------------------------------------------------------------

    def group_by(self, expr: str) -> "DB":
        self.builder.group_by = expr
        return self

    def having(self, column: str, op, value: Any = None) -> "DB":
        """Filter grouped rows; repeated calls are joined with AND."""
        clause = TextBuilder().predicate(column, op, value)
        having = self.builder.having
        if having:
            having.write(" AND ")
        having.extend(clause)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "DB":
        """Order by table.column; ordering an existing column again updates it in place."""
        direction = direction.upper()
        order = self.builder.order_by
        for i, (existing, _) in enumerate(order):
            if existing == column:
                order[i] = (column, direction)
                return self
        order.append((column, direction))
        return self

    def order_by_raw(self, expr: str) -> "DB":
        self.builder.order_by_raw = expr
        return self

    def in_random_order(self) -> "DB":
        """ORDER BY random(); slow on large tables."""
        return self.order_by_raw("random()")

    def limit(self, limit: int) -> "DB":
        self.builder.limit = int(limit)
        return self

    def offset(self, offset: int) -> "DB":
        self.builder.offset = int(offset)
        return self

    def lock_for_update(self) -> "DB":
        self.builder.lock = LOCK_FOR_UPDATE
        return self

    # ------------------------------------------------------------------
    # Unions
    # ------------------------------------------------------------------

    def union(self) -> "DB":
        """Capture the current SELECT as a union branch."""
        self.builder.unions.append(self.builder.build_select().build())
        return self

    def union_all(self) -> "DB":
        """Capture the current SELECT and join all branches with UNION ALL."""
        self.union()
        self.builder.union_all = True
        return self

    # ------------------------------------------------------------------
    # Terminal calls
    # ------------------------------------------------------------------

    def query(self) -> Tuple[str, List[Any]]:
        """Build the SELECT statement.

        Returns:
            Tuple of (sql, args)

        Raises:
            TableNotSetError: If table() was not called
        """
        sql, args = self.builder.build_query().build()
        logger.debug(f"Built SELECT: {sql}")
        return sql, args

    def exists(self) -> Tuple[str, List[Any]]:
        """Build SELECT EXISTS (SELECT 1 FROM ...) for the current filters."""
        sql, args = self.builder.build_exists().build()
        logger.debug(f"Built EXISTS: {sql}")
        return sql, args

    def _aggregate(self, expr: str) -> Tuple[str, List[Any]]:
        sql, args = self.builder.build_select(columns=[expr]).build()
        logger.debug(f"Built aggregate: {sql}")
        return sql, args

    def count(self) -> Tuple[str, List[Any]]:
        return self._aggregate("COUNT(*)")

    def avg(self, column: str) -> Tuple[str, List[Any]]:
        return self._aggregate(f"AVG({column})")

    def min(self, column: str) -> Tuple[str, List[Any]]:
        return self._aggregate(f"MIN({column})")

    def max(self, column: str) -> Tuple[str, List[Any]]:
        return self._aggregate(f"MAX({column})")

    def sum(self, column: str) -> Tuple[str, List[Any]]:
        return self._aggregate(f"SUM({column})")

    def to_sql(self) -> str:
        """Return the SELECT text without args."""
        return self.query()[0]

    def dump(self) -> "DB":
        """Log the current SELECT at INFO level."""
        sql, args = self.builder.build_query().build()
        logger.info(f"{sql} {args!r}")
        return self
