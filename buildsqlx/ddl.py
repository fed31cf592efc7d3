"""
===========================================================
Data Definition Language (DDL) builders for CREATE / ALTER.
===========================================================

Provides the schema side of the builder: a Table collects column
definitions through a configuration callback, then renders a CREATE TABLE or
ALTER TABLE statement.

Each column constructor (integer, string, timestamp, ...) returns a Column
handle whose modifiers (not_null, default, index, foreign_key, ...) apply to
that column only, so modifiers can never land on the wrong column.

Table-level clauses that follow the column list (PRIMARY KEY, INDEX,
UNIQUE INDEX, FOREIGN KEY) are written to a separate child accumulator and
spliced in after the last column, inside the closing parenthesis.

Classes:
    ColumnSpec: Plain record of one column's definition
    Column: Chainable modifier handle bound to one ColumnSpec
    Table: Column collection plus CREATE/ALTER rendering
    DdlMixin: create_table / modify_table entry points for DB

Example:
    >>> from buildsqlx import DB
    >>>
    >>> def posts(table):
    ...     table.increments('id')
    ...     table.string('title', 128).not_null().index('idx_title')
    ...     table.big_int('user_id').foreign_key('fk_user', 'users', 'id')
    ...     table.table_comment('Blog posts')
    >>>
    >>> sql = DB().create_table('posts', posts)
    >>> sql[0].startswith('CREATE TABLE "posts" ("id" INTEGER AUTO_INCREMENT')
    True
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from buildsqlx.exceptions import AutoIncrementError, NoColumnError
from buildsqlx.text_builder import TextBuilder, quote
from core.logger import get_logger

logger = get_logger(__name__)

# MySQL column types
TYPE_TINY_INT = "TINYINT"
TYPE_SMALL_INT = "SMALLINT"
TYPE_MEDIUM_INT = "MEDIUMINT"
TYPE_INT = "INTEGER"
TYPE_BIG_INT = "BIGINT"
TYPE_FLOAT = "FLOAT"
TYPE_DOUBLE = "DOUBLE"
TYPE_DECIMAL = "DECIMAL"
TYPE_DATE = "DATE"
TYPE_TIME = "TIME"
TYPE_YEAR = "YEAR"
TYPE_DATE_TIME = "DATETIME"
TYPE_TIMESTAMP = "TIMESTAMP"
TYPE_CHAR = "CHAR"
TYPE_VARCHAR = "VARCHAR"
TYPE_BLOB = "BLOB"
TYPE_TEXT = "TEXT"
TYPE_LONG_BLOB = "LONGBLOB"
TYPE_LONG_TEXT = "LONGTEXT"
TYPE_JSON = "JSON"

CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"
SQL_NULL = "NULL"
NO_ACTION = "NO ACTION"
DEFAULT_AFTER_COLUMN = "id"

# Defaults rendered as quoted string literals
QUOTED_DEFAULT_TYPES = (TYPE_CHAR, TYPE_VARCHAR, TYPE_DATE, TYPE_TIME, TYPE_DATE_TIME)
# Types MySQL refuses a literal default for
NO_DEFAULT_TYPES = (TYPE_BLOB, TYPE_LONG_BLOB, TYPE_TEXT, TYPE_LONG_TEXT, TYPE_JSON)


def _literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _to_default(value: Any) -> str:
    """Render a default value as SQL text.

    Booleans become true/false and integral floats lose their '.0'.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _base_type(column_type: str) -> str:
    """Return the type name without its size, e.g. VARCHAR(20) -> VARCHAR."""
    return column_type.split("(", 1)[0].strip().upper()


@dataclass
class ColumnSpec:
    """Definition of one column.

    Attributes:
        name: Column name
        column_type: Rendered type including size, e.g. 'VARCHAR(20)'
        rename_to: New name when the column is renamed
        not_null: True for NOT NULL, False for NULL, None to omit
        auto_increment: Add AUTO_INCREMENT
        primary_key: Declare as PRIMARY KEY
        default: Rendered default value
        default_is_null: The default is the NULL keyword, written unquoted
        is_index: Add a plain index named index_name
        is_unique: Add a unique index named index_name
        index_name: Index name for index/unique/drop index
        foreign_key: Rendered CONSTRAINT ... FOREIGN KEY clause
        comment: Column comment
        is_drop: Drop the column (or the index when is_index is set)
        is_modify: Change the column in place
        after: Column to add this column after
        charset: Character set
        collation: Collation
    """

    name: str
    column_type: str = ""
    rename_to: Optional[str] = None
    not_null: Optional[bool] = None
    auto_increment: bool = False
    primary_key: bool = False
    default: Optional[str] = None
    default_is_null: bool = False
    is_index: bool = False
    is_unique: bool = False
    index_name: str = ""
    foreign_key: Optional[str] = None
    comment: Optional[str] = None
    is_drop: bool = False
    is_modify: bool = False
    after: Optional[str] = None
    charset: Optional[str] = None
    collation: Optional[str] = None


class Column:
    """Modifier handle for a single column; every method returns the handle."""

    def __init__(self, spec: ColumnSpec):
        self.spec = spec

    def not_null(self) -> "Column":
        self.spec.not_null = True
        return self

    def nullable(self) -> "Column":
        self.spec.not_null = False
        return self

    def default(self, value: Any) -> "Column":
        """Set the default; None renders DEFAULT NULL."""
        self.spec.default_is_null = value is None
        self.spec.default = SQL_NULL if value is None else _to_default(value)
        return self

    def comment(self, text: str) -> "Column":
        self.spec.comment = text
        return self

    def index(self, name: str) -> "Column":
        self.spec.index_name = name
        self.spec.is_index = True
        return self

    def unique(self, name: str) -> "Column":
        self.spec.index_name = name
        self.spec.is_unique = True
        return self

    def primary(self) -> "Column":
        self.spec.primary_key = True
        return self

    def foreign_key(
        self,
        name: str,
        ref_table: str,
        ref_column: str,
        on_update: Optional[str] = None,
        on_delete: Optional[str] = None
    ) -> "Column":
        """Reference ref_table(ref_column) through constraint name.

        Args:
            name: Constraint name
            ref_table: Referenced table
            ref_column: Referenced column
            on_update: ON UPDATE action, NO ACTION when omitted
            on_delete: ON DELETE action, NO ACTION when omitted
        """
        self.spec.foreign_key = (
            f"CONSTRAINT {quote(name)} FOREIGN KEY ({quote(self.spec.name)}) "
            f"REFERENCES {quote(ref_table)} ({quote(ref_column)}) "
            f"ON UPDATE {on_update or NO_ACTION} ON DELETE {on_delete or NO_ACTION}"
        )
        return self

    def collation(self, collation: str) -> "Column":
        self.spec.collation = collation
        return self

    def charset(self, charset: str) -> "Column":
        self.spec.charset = charset
        return self

    def after(self, column: str) -> "Column":
        """Position the added column after another one (ALTER only)."""
        self.spec.after = column
        return self

    def change(self) -> "Column":
        """Render the column as CHANGE COLUMN instead of ADD COLUMN (ALTER only)."""
        self.spec.is_modify = True
        return self


class Table:
    """Column collection for one CREATE TABLE or ALTER TABLE statement.

    Attributes:
        name: Table name
        columns: ColumnSpecs in declaration order
        comment: Table comment
    """

    def __init__(self, name: str):
        self.name = name
        self.columns: List[ColumnSpec] = []
        self.comment: Optional[str] = None
        self._sb = TextBuilder()
        self._child = TextBuilder()

    def _add(self, spec: ColumnSpec) -> Column:
        self.columns.append(spec)
        return Column(spec)

    def last_column(self) -> Column:
        """Return a handle on the most recently declared column.

        Raises:
            NoColumnError: If no column was declared yet
        """
        if not self.columns:
            raise NoColumnError(f"table {self.name!r} has no column to modify")
        return Column(self.columns[-1])

    # Column constructors

    def increments(self, name: str) -> Column:
        """Auto incremented INTEGER primary key."""
        return self._add(ColumnSpec(name, TYPE_INT, primary_key=True, auto_increment=True))

    def big_increments(self, name: str) -> Column:
        """Auto incremented BIGINT primary key."""
        return self._add(ColumnSpec(name, TYPE_BIG_INT, primary_key=True, auto_increment=True))

    def boolean(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_TINY_INT))

    def tiny_int(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_TINY_INT))

    def small_int(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_SMALL_INT))

    def medium_int(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_MEDIUM_INT))

    def integer(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_INT))

    def big_int(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_BIG_INT))

    def float(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_FLOAT))

    def double(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_DOUBLE))

    def decimal(self, name: str, precision: int, scale: int) -> Column:
        return self._add(ColumnSpec(name, f"{TYPE_DECIMAL}({int(precision)}, {int(scale)})"))

    def date(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_DATE))

    def time(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_TIME))

    def year(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_YEAR))

    def date_time(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_DATE_TIME))

    def timestamp(self, name: str, is_default: bool = False) -> Column:
        """TIMESTAMP column.

        With is_default the column is NOT NULL DEFAULT CURRENT_TIMESTAMP,
        otherwise it is explicitly NULL.
        """
        spec = ColumnSpec(name, TYPE_TIMESTAMP, not_null=is_default)
        if is_default:
            spec.default = CURRENT_TIMESTAMP
        return self._add(spec)

    def char(self, name: str, length: int) -> Column:
        return self._add(ColumnSpec(name, f"{TYPE_CHAR}({int(length)})"))

    def string(self, name: str, length: int) -> Column:
        """VARCHAR(length) column."""
        return self._add(ColumnSpec(name, f"{TYPE_VARCHAR}({int(length)})"))

    def text(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_TEXT))

    def blob(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_BLOB))

    def long_text(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_LONG_TEXT))

    def long_blob(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_LONG_BLOB))

    def json(self, name: str) -> Column:
        return self._add(ColumnSpec(name, TYPE_JSON))

    # Structural changes (ALTER)

    def rename(self, old: str, new: str, column_type: Optional[str] = None) -> Column:
        """Rename a column.

        Without column_type this renders RENAME COLUMN; with it, CHANGE
        COLUMN so the definition can be restated at the same time.
        """
        return self._add(ColumnSpec(old, column_type or "", rename_to=new, is_modify=True))

    def drop_column(self, name: str) -> None:
        self.columns.append(ColumnSpec(name, is_drop=True))

    def drop_index(self, index_name: str) -> None:
        self.columns.append(ColumnSpec("", index_name=index_name, is_drop=True, is_index=True))

    def table_comment(self, text: str) -> None:
        self.comment = text

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def _write_definition(sb: TextBuilder, col: ColumnSpec) -> None:
        """Write '<type> [modifiers]' shared by CREATE, ADD and CHANGE."""
        sb.write(col.column_type)

        if col.auto_increment:
            sb.write(" AUTO_INCREMENT")
        if col.charset is not None:
            sb.write(" CHARACTER SET ").write(_literal(col.charset))
        if col.collation is not None:
            sb.write(" COLLATE ").write(_literal(col.collation))
        if col.not_null is not None:
            sb.write(" NOT NULL" if col.not_null else " NULL")

        if col.default_is_null:
            sb.write(" DEFAULT ").write(SQL_NULL)
        elif col.default is not None:
            base = _base_type(col.column_type)
            if base in QUOTED_DEFAULT_TYPES:
                sb.write(" DEFAULT ").write(_literal(col.default))
            elif base not in NO_DEFAULT_TYPES:
                sb.write(" DEFAULT ").write(col.default)

        if col.comment is not None:
            sb.write(" COMMENT ").write(_literal(col.comment))

    @staticmethod
    def _write_index_target(b: TextBuilder, col: ColumnSpec) -> None:
        b.identifier(col.name).write(" ASC")

    def build_create(self) -> str:
        """Render CREATE TABLE.

        Raises:
            AutoIncrementError: If more than one column auto increments
        """
        if sum(1 for col in self.columns if col.auto_increment) > 1:
            raise AutoIncrementError()

        self._sb = TextBuilder()
        self._child = TextBuilder()
        child = self._child

        def body(sb: TextBuilder) -> None:
            for i, col in enumerate(self.columns):
                if i > 0:
                    sb.comma()
                sb.identifier(col.name).pad()
                self._write_definition(sb, col)

                if col.primary_key:
                    child.comma().write("PRIMARY KEY ").nested(lambda b: b.identifier(col.name))
                if col.is_index:
                    child.comma().write("INDEX ").identifier(col.index_name).pad()
                    child.nested(lambda b: self._write_index_target(b, col))
                if col.is_unique:
                    child.comma().write("UNIQUE INDEX ").identifier(col.index_name).pad()
                    child.nested(lambda b: self._write_index_target(b, col))
                if col.foreign_key is not None:
                    child.comma().write(col.foreign_key)

            sb.extend(child)

        self._sb.write("CREATE TABLE ").identifier(self.name).pad().nested(body)

        if self.comment is not None:
            self._sb.write(" COMMENT ").write(_literal(self.comment))

        return self._sb.text

    def build_modify(self) -> str:
        """Render ALTER TABLE with one clause per declared column."""
        self._sb = TextBuilder()
        self._child = TextBuilder()
        sb, child = self._sb, self._child

        sb.write("ALTER TABLE ").identifier(self.name).pad()
        for i, col in enumerate(self.columns):
            if i > 0:
                sb.comma()

            if col.is_drop:
                if col.is_index:
                    sb.write("DROP INDEX ").identifier(col.index_name)
                else:
                    sb.write("DROP COLUMN ").identifier(col.name)
                continue

            if col.is_modify:
                if col.rename_to is not None and not col.column_type:
                    sb.write("RENAME COLUMN ").identifier(col.name).write(" TO ").identifier(col.rename_to)
                else:
                    sb.write("CHANGE COLUMN ").identifier(col.name).pad()
                    sb.identifier(col.rename_to if col.rename_to is not None else col.name).pad()
                    self._write_definition(sb, col)
            else:
                sb.write("ADD COLUMN ").identifier(col.name).pad()
                self._write_definition(sb, col)
                sb.write(" AFTER ").identifier(col.after or DEFAULT_AFTER_COLUMN)

            if col.is_index:
                child.comma().write("ADD INDEX ").identifier(col.index_name).pad()
                child.nested(lambda b: self._write_index_target(b, col))
            if col.is_unique:
                child.comma().write("ADD UNIQUE INDEX ").identifier(col.index_name).pad()
                child.nested(lambda b: self._write_index_target(b, col))
            if col.foreign_key is not None:
                child.comma().write("ADD ").write(col.foreign_key)

        sb.extend(child)

        if self.comment is not None:
            sb.write(", COMMENT ").write(_literal(self.comment))

        return sb.text


def _run_schema_callback(table: Table, fn: Callable[[Table], Any]) -> None:
    """Run the column configuration callback.

    The callback aborts generation by raising, or by returning an exception
    instance, which is raised here.
    """
    try:
        result = fn(table)
    except Exception:
        logger.warning(f"Schema callback for table {table.name} failed")
        raise

    if isinstance(result, BaseException):
        logger.warning(f"Schema callback for table {table.name} reported {result!r}")
        raise result


class DdlMixin:
    """Schema statements for DB."""

    def create_table(self, name: str, fn: Callable[[Table], Any]) -> List[str]:
        """Build CREATE TABLE from the columns fn declares.

        Args:
            name: Table name
            fn: Callback receiving the Table to declare columns on

        Returns:
            List with the CREATE TABLE statement, empty when fn declared no
            columns

        Raises:
            AutoIncrementError: If more than one auto increment column is declared
        """
        table = Table(name)
        _run_schema_callback(table, fn)
        if not table.columns:
            return []

        sql = table.build_create()
        logger.debug(f"Built CREATE TABLE: {sql}")
        return [sql]

    def modify_table(self, name: str, fn: Callable[[Table], Any]) -> List[str]:
        """Build ALTER TABLE adding, changing or dropping the columns fn declares.

        Args:
            name: Table name
            fn: Callback receiving the Table to declare changes on

        Returns:
            List with the ALTER TABLE statement, empty when fn declared nothing
        """
        table = Table(name)
        _run_schema_callback(table, fn)
        if not table.columns:
            return []

        sql = table.build_modify()
        logger.debug(f"Built ALTER TABLE: {sql}")
        return [sql]
