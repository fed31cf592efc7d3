"""
===========================================
Data Manipulation Language (DML) builders.
===========================================

INSERT, UPDATE, DELETE and upsert statements for the DB builder. Methods live
on DmlMixin and read the QueryState of the DB they are mixed into.

Functions:
- insert: single row INSERT
- insert_batch: multi-row INSERT with one VALUES list
- update: UPDATE ... SET with the regular clause tail
- update_batch: one UPDATE setting several rows through CASE WHEN
- delete: DELETE with the regular clause tail
- replace: INSERT ... ON DUPLICATE KEY UPDATE
- drop, drop_if_exists, truncate, rename: plain table statements

Every method returns (sql, args) with args in placeholder order.

Usage:
    from buildsqlx import DB

    sql, args = DB().table('users').insert({'name': 'ann', 'points': 3})
    # INSERT INTO "users" ("name", "points") VALUES (?, ?)   ['ann', 3]
"""

from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from buildsqlx.exceptions import BatchShapeError, EmptyDataError
from buildsqlx.text_builder import Op, TextBuilder, quote
from core.logger import get_logger

logger = get_logger(__name__)


def _write_column_list(sb: TextBuilder, columns: Sequence[str]) -> None:
    for i, col in enumerate(columns):
        if i > 0:
            sb.comma()
        sb.identifier(col)


def _chunk(items: List[Any], size: int) -> List[List[Any]]:
    """Split items into consecutive slices of size elements."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class DmlMixin:
    """Write statements for DB."""

    def _insert_head(self, table: str, columns: Sequence[str]) -> TextBuilder:
        sb = TextBuilder()
        sb.write("INSERT INTO ").identifier(table).pad()
        sb.nested(lambda b: _write_column_list(b, columns))
        return sb.write(" VALUES ")

    def insert(self, data: Mapping[str, Any]) -> Tuple[str, List[Any]]:
        """Build a single row INSERT.

        Columns are rendered in the mapping's iteration order, which for a
        dict is insertion order; args follow the same order.

        Args:
            data: Column to value mapping

        Returns:
            Tuple of (sql, args)

        Raises:
            TableNotSetError: If table() was not called
            EmptyDataError: If data is empty
        """
        table = self.builder.require_table()
        if not data:
            raise EmptyDataError("insert requires at least one column")

        columns = list(data)
        values = [data[col] for col in columns]

        sb = self._insert_head(table, columns)
        sb.nested(lambda b: b.argument_list(values))

        sql, args = sb.build()
        logger.debug(f"Built INSERT: {sql}")
        return sql, args

    def insert_batch(self, rows: Iterable[Mapping[str, Any]]) -> Tuple[str, List[Any]]:
        """Build one INSERT with a VALUES tuple per row.

        The column order comes from the first row; every other row must have
        exactly the same keys.

        Args:
            rows: Row mappings

        Returns:
            Tuple of (sql, args) with args flattened row by row

        Raises:
            EmptyDataError: If there are no rows or the first row is empty
            BatchShapeError: If a row's keys differ from the first row's
        """
        table = self.builder.require_table()
        rows = list(rows)
        if not rows or not rows[0]:
            raise EmptyDataError("insert_batch requires at least one non-empty row")

        columns = list(rows[0])
        expected = set(columns)
        for i, row in enumerate(rows[1:], start=1):
            if set(row) != expected:
                logger.warning(f"insert_batch row {i} has columns {sorted(row)}, expected {sorted(expected)}")
                raise BatchShapeError(
                    f"row {i} columns {sorted(row)} do not match first row columns {sorted(expected)}"
                )

        sb = self._insert_head(table, columns)
        for i, row in enumerate(rows):
            if i > 0:
                sb.comma()
            values = [row[col] for col in columns]
            sb.nested(lambda b: b.argument_list(values))

        sql, args = sb.build()
        logger.debug(f"Built batch INSERT of {len(rows)} rows: {sql}")
        return sql, args

    def update(self, data: Mapping[str, Any]) -> Tuple[str, List[Any]]:
        """Build UPDATE ... SET with the builder's FROM, WHERE and other clauses.

        Args:
            data: Column to new value mapping

        Returns:
            Tuple of (sql, args): SET values first, then WHERE and HAVING args
        """
        state = self.builder
        table = state.require_table()
        if not data:
            raise EmptyDataError("update requires at least one column")

        sb = TextBuilder()
        sb.write("UPDATE ").identifier(table).write(" SET ")
        for i, (col, value) in enumerate(data.items()):
            if i > 0:
                sb.comma()
            sb.identifier(col).operator(Op.EQ).argument(value)

        if state.from_table:
            sb.write(" FROM ").identifier(state.from_table)

        state.write_tail(sb)

        sql, args = sb.build()
        logger.debug(f"Built UPDATE: {sql}")
        return sql, args

    def update_batch(
        self,
        where: Mapping[str, Sequence[Any]],
        update: Mapping[str, Sequence[Any]]
    ) -> Tuple[str, List[Any]]:
        """Update several rows in one statement with CASE WHEN.

        Row N is identified by the Nth value of every where column and gets
        the Nth value of every update column:

            UPDATE "t" SET "c" = CASE WHEN "k1" = ? AND "k2" = ? THEN ?
                ... ELSE "c" END, ...

        Args:
            where: Key column to per-row values, all of the same length
            update: Updated column to per-row values, same length as where

        Returns:
            Tuple of (sql, args)

        Raises:
            BatchShapeError: If a mapping is empty or the lengths disagree
        """
        state = self.builder
        table = state.require_table()
        if not where or not update:
            raise BatchShapeError("update_batch requires where and update columns")

        where_keys = list(where)
        lengths = {key: len(where[key]) for key in where_keys}
        row_count = lengths[where_keys[0]]
        if row_count == 0 or any(n != row_count for n in lengths.values()):
            logger.warning(f"update_batch where column lengths disagree: {lengths}")
            raise BatchShapeError(f"where columns must have the same non-zero length, got {lengths}")

        for col, values in update.items():
            if len(values) != row_count:
                logger.warning(f"update_batch column {col} has {len(values)} values for {row_count} rows")
                raise BatchShapeError(
                    f"update column {col!r} has {len(values)} values, expected {row_count}"
                )

        pairs = [(key, where[key][row]) for row in range(row_count) for key in where_keys]
        batches = _chunk(pairs, len(where_keys))

        sb = TextBuilder()
        sb.write("UPDATE ").identifier(table).write(" SET ")
        for i, (col, values) in enumerate(update.items()):
            if i > 0:
                sb.comma()
            sb.identifier(col).write(" = CASE")
            for row, batch in enumerate(batches):
                sb.write(" WHEN ")
                for k, (key, value) in enumerate(batch):
                    if k > 0:
                        sb.write(" AND ")
                    sb.identifier(key).operator(Op.EQ).argument(value)
                sb.write(" THEN ").argument(values[row])
            sb.write(" ELSE ").identifier(col).write(" END")

        state.write_tail(sb)

        sql, args = sb.build()
        logger.debug(f"Built batch UPDATE of {row_count} rows: {sql}")
        return sql, args

    def delete(self) -> Tuple[str, List[Any]]:
        """Build DELETE FROM with the builder's WHERE and other clauses."""
        state = self.builder
        table = state.require_table()

        sb = TextBuilder().write("DELETE FROM ").identifier(table)
        state.write_tail(sb)

        sql, args = sb.build()
        logger.debug(f"Built DELETE: {sql}")
        return sql, args

    def replace(self, data: Mapping[str, Any], conflict: str) -> Tuple[str, List[Any]]:
        """Build an upsert: INSERT ... ON DUPLICATE KEY UPDATE col = excluded.col.

        Args:
            data: Column to value mapping
            conflict: Unique key column the duplicate is detected on; must be
                one of the inserted columns

        Returns:
            Tuple of (sql, args)

        Raises:
            ValueError: If conflict is not an inserted column
        """
        table = self.builder.require_table()
        if not data:
            raise EmptyDataError("replace requires at least one column")
        if conflict not in data:
            raise ValueError(f"conflict column {conflict!r} is not among the inserted columns")

        columns = list(data)
        values = [data[col] for col in columns]

        sb = self._insert_head(table, columns)
        sb.nested(lambda b: b.argument_list(values))
        sb.write(" ON DUPLICATE KEY UPDATE ")
        for i, col in enumerate(columns):
            if i > 0:
                sb.comma()
            sb.identifier(col).operator(Op.EQ).write("excluded.").identifier(col)

        sql, args = sb.build()
        logger.debug(f"Built REPLACE: {sql}")
        return sql, args

    # ------------------------------------------------------------------
    # Table statements
    # ------------------------------------------------------------------

    def drop(self, table: str) -> str:
        return "DROP TABLE " + quote(table)

    def drop_if_exists(self, table: str) -> str:
        return "DROP TABLE IF EXISTS " + quote(table)

    def truncate(self, table: str) -> str:
        return "TRUNCATE " + quote(table)

    def rename(self, old: str, new: str) -> str:
        """Build ALTER TABLE ... RENAME TO."""
        return "ALTER TABLE " + quote(old) + " RENAME TO " + quote(new)
