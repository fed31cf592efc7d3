"""
==============================================
Text accumulator for parameterized SQL output.
==============================================

TextBuilder is the primitive every statement is assembled with: an
append-only buffer of SQL text plus the ordered list of values bound to the
``?`` placeholders written into it.

The one invariant everything above relies on: the Nth placeholder emitted into
the text is bound to ``args[N]``. Nested builders keep it by splicing their
text and their args into the parent in the same call.

Example:
    >>> from buildsqlx.text_builder import Op, TextBuilder
    >>>
    >>> sb = TextBuilder()
    >>> sb.identifier('id').operator(Op.IN).nested(lambda b: b.argument_list([1, 2, 3]))
    >>> sb.build()
    ('"id" IN (?, ?, ?)', [1, 2, 3])
"""

from collections import abc
from enum import IntEnum
from typing import Any, Callable, Iterable, List, Tuple, Union

from buildsqlx.exceptions import InvalidOperatorError

QUOTE = '"'
PLACEHOLDER = "?"


class Op(IntEnum):
    """Predicate operators understood by TextBuilder.operator()."""

    EQ = 0
    NEQ = 1
    GT = 2
    GTE = 3
    LT = 4
    LTE = 5
    IN = 6
    NOT_IN = 7
    LIKE = 8
    NOT_LIKE = 9
    BETWEEN = 10
    NOT_BETWEEN = 11
    IS_NULL = 12
    NOT_NULL = 13

    @property
    def token(self) -> str:
        return _OP_TOKENS[self]

    @property
    def is_postfix(self) -> bool:
        return self in (Op.IS_NULL, Op.NOT_NULL)

    @classmethod
    def parse(cls, op: Union["Op", int, str]) -> "Op":
        """Resolve an Op member, its integer code or its SQL token.

        Raises:
            InvalidOperatorError: If op is not a known operator
        """
        if isinstance(op, Op):
            return op
        if isinstance(op, str):
            key = " ".join(op.split()).upper()
            if key == "!=":
                key = "<>"
            for member, token in _OP_TOKENS.items():
                if token == key:
                    return member
            raise InvalidOperatorError(f"invalid op {op!r}")
        if isinstance(op, int) and not isinstance(op, bool):
            try:
                return cls(op)
            except ValueError:
                pass
        raise InvalidOperatorError(f"invalid op {op!r}")


_OP_TOKENS = {
    Op.EQ: "=",
    Op.NEQ: "<>",
    Op.GT: ">",
    Op.GTE: ">=",
    Op.LT: "<",
    Op.LTE: "<=",
    Op.IN: "IN",
    Op.NOT_IN: "NOT IN",
    Op.LIKE: "LIKE",
    Op.NOT_LIKE: "NOT LIKE",
    Op.BETWEEN: "BETWEEN",
    Op.NOT_BETWEEN: "NOT BETWEEN",
    Op.IS_NULL: "IS NULL",
    Op.NOT_NULL: "IS NOT NULL",
}


def quote(ident: str) -> str:
    """Wrap an identifier in the quote character."""
    return QUOTE + ident + QUOTE


def is_value_list(value: Any) -> bool:
    """True for iterables of values; str and bytes count as single values."""
    return isinstance(value, abc.Iterable) and not isinstance(value, (str, bytes, bytearray))


class TextBuilder:
    """Append-only SQL text buffer with ordered bound arguments.

    Every write method returns the builder itself so calls can be chained.

    Attributes:
        args: Values bound to the placeholders written so far, in order
    """

    def __init__(self):
        self._parts: List[str] = []
        self.args: List[Any] = []

    # ------------------------------------------------------------------
    # Raw writes
    # ------------------------------------------------------------------

    def write(self, text: str) -> "TextBuilder":
        self._parts.append(text)
        return self

    def write_byte(self, ch: str) -> "TextBuilder":
        """Write a single character."""
        if len(ch) != 1:
            raise ValueError(f"write_byte expects one character, got {ch!r}")
        self._parts.append(ch)
        return self

    def pad(self) -> "TextBuilder":
        return self.write_byte(" ")

    def comma(self) -> "TextBuilder":
        return self.write(", ")

    # ------------------------------------------------------------------
    # Identifiers and operators
    # ------------------------------------------------------------------

    def identifier(self, name: str) -> "TextBuilder":
        return self.write(quote(name))

    def qualified_identifier(self, table: str, name: str) -> "TextBuilder":
        """Write ``"table"."name"``."""
        return self.identifier(table).write_byte(".").identifier(name)

    def operator(self, op: Union[Op, int, str]) -> "TextBuilder":
        """Write an operator token.

        Binary operators are padded on both sides; IS NULL and IS NOT NULL
        only get the leading space since nothing follows them.

        Args:
            op: Op member, integer code or SQL token such as '>=' or 'NOT IN'

        Raises:
            InvalidOperatorError: If op is not a known operator
        """
        resolved = Op.parse(op)
        self.pad().write(resolved.token)
        if not resolved.is_postfix:
            self.pad()
        return self

    # ------------------------------------------------------------------
    # Arguments
    # ------------------------------------------------------------------

    def argument(self, value: Any) -> "TextBuilder":
        """Bind one value and write its placeholder."""
        self.args.append(value)
        return self.write(PLACEHOLDER)

    def argument_list(self, values: Iterable[Any]) -> "TextBuilder":
        """Bind values and write their placeholders, comma separated."""
        for i, value in enumerate(values):
            if i > 0:
                self.comma()
            self.argument(value)
        return self

    def params(self, *values: Any) -> "TextBuilder":
        """Bind values for placeholders already present in raw text."""
        self.args.extend(values)
        return self

    def predicate(self, column: str, op: Union[Op, int, str], value: Any = None) -> "TextBuilder":
        """Write ``"column" <op> <operand>`` with the operand bound.

        The operand shape follows the operator: IN/NOT IN take a non-empty
        iterable rendered as a nested list, BETWEEN/NOT BETWEEN take a
        (low, high) pair, IS NULL/IS NOT NULL take nothing.

        Args:
            column: Column name, quoted as an identifier
            op: Operator (see operator())
            value: Operand for the operator

        Returns:
            This builder

        Raises:
            TypeError: If an IN/NOT IN operand is a string or not iterable
            ValueError: If an IN/NOT IN operand is empty
        """
        resolved = Op.parse(op)
        if resolved in (Op.IN, Op.NOT_IN):
            if not is_value_list(value):
                raise TypeError(f"{resolved.token} expects an iterable of values, got {type(value).__name__}")
            values = list(value)
            if not values:
                raise ValueError(f"{resolved.token} on {column!r} requires at least one value")
            self.identifier(column).operator(resolved)
            self.nested(lambda b: b.argument_list(values))
            return self

        self.identifier(column).operator(resolved)
        if resolved in (Op.BETWEEN, Op.NOT_BETWEEN):
            low, high = value
            self.argument(low).write(" AND ").argument(high)
        elif not resolved.is_postfix:
            self.argument(value)
        return self

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def nested(self, build_fn: Callable[["TextBuilder"], Any]) -> "TextBuilder":
        """Run build_fn on a fresh builder and splice it in parenthesized.

        The child's text (wrapped in parentheses) and its args are appended
        to this builder together, so placeholder order is preserved.

        Args:
            build_fn: Callback receiving the child builder

        Returns:
            This builder
        """
        child = TextBuilder()
        build_fn(child)
        self._parts.append("(" + child.text + ")")
        self.args.extend(child.args)
        return self

    def extend(self, other: "TextBuilder") -> "TextBuilder":
        """Append another builder's text and args."""
        self._parts.append(other.text)
        self.args.extend(other.args)
        return self

    def clone(self) -> "TextBuilder":
        """Return a copy sharing no lists with this builder."""
        copy = TextBuilder()
        copy._parts = [self.text] if self._parts else []
        copy.args = list(self.args)
        return copy

    def reset(self) -> "TextBuilder":
        self._parts = []
        self.args = []
        return self

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def build(self) -> Tuple[str, List[Any]]:
        """Return the rendered text and a copy of the bound args."""
        return self.text, list(self.args)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"TextBuilder(text={self.text!r}, args={self.args!r})"
