"""PostgREST filter strings applied to SQLAlchemy queries.

Keyset pagination conditions are produced as Supabase ``or()`` filter strings
(``created_at.lt.X``, ``and(created_at.eq.X,id.lt.Y)``) so they can be sent
verbatim to a PostgREST endpoint. This module parses the same grammar and
turns it into SQLAlchemy clauses, which is how the local store applies them.

Supported subset:

* conditions separated by commas at the same nesting level;
* ``and(...)`` and ``or(...)`` groups, arbitrarily nested;
* ``column.operator.value`` with ``eq``, ``neq``, ``lt``, ``lte``, ``gt``,
  ``gte`` and ``is`` (``null``, ``true``, ``false``);
* double-quoted values with backslash escapes for text containing reserved
  characters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Union

from sqlalchemy import Boolean, DateTime, Float, Integer, Numeric, and_, or_
from sqlalchemy.sql.elements import ColumnElement

__all__ = [
    "FilterCondition",
    "FilterGroup",
    "PostgrestFilterError",
    "apply_or_filters",
    "parse_filter_expression",
    "quote_filter_value",
    "to_clause",
]

_RESERVED = frozenset(',()"')
_COMPARISONS = {
    "eq": lambda column, value: column == value,
    "neq": lambda column, value: column != value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
}
_IS_VALUES = {"null": None, "true": True, "false": False}


class PostgrestFilterError(ValueError):
    """Raised when a filter string cannot be parsed or applied."""


@dataclass(frozen=True)
class FilterCondition:
    """Single ``column.operator.value`` comparison."""

    column: str
    operator: str
    value: str


@dataclass(frozen=True)
class FilterGroup:
    """``and(...)`` / ``or(...)`` group of nested filters."""

    kind: str
    children: tuple[FilterNode, ...]


FilterNode = Union[FilterCondition, FilterGroup]


def quote_filter_value(value: Any) -> str:
    """Render ``value`` for a filter string, quoting only when required."""
    text = str(value)
    if text and not any(char in _RESERVED for char in text) and text == text.strip():
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> list[FilterNode]:
        nodes = self._parse_list()
        if self.pos != len(self.text):
            raise PostgrestFilterError(f"Unexpected character at {self.pos}: {self.text!r}")
        return nodes

    def _parse_list(self) -> list[FilterNode]:
        nodes = [self._parse_node()]
        while self.pos < len(self.text) and self.text[self.pos] == ",":
            self.pos += 1
            nodes.append(self._parse_node())
        return nodes

    def _parse_node(self) -> FilterNode:
        for kind in ("and", "or"):
            prefix = f"{kind}("
            if self.text.startswith(prefix, self.pos):
                self.pos += len(prefix)
                children = self._parse_list()
                self._expect(")")
                return FilterGroup(kind=kind, children=tuple(children))
        return self._parse_condition()

    def _parse_condition(self) -> FilterCondition:
        column = self._read_identifier()
        self._expect(".")
        operator = self._read_identifier()
        self._expect(".")
        value = self._read_value()
        if not column or not operator:
            raise PostgrestFilterError(f"Malformed condition in {self.text!r}")
        return FilterCondition(column=column, operator=operator, value=value)

    def _read_identifier(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self.pos += 1
        return self.text[start:self.pos]

    def _read_value(self) -> str:
        if self.pos < len(self.text) and self.text[self.pos] == '"':
            return self._read_quoted()
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in ",()":
            self.pos += 1
        return self.text[start:self.pos]

    def _read_quoted(self) -> str:
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == '"':
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise PostgrestFilterError(f"Unterminated quoted value in {self.text!r}")

    def _expect(self, char: str) -> None:
        if self.pos >= len(self.text) or self.text[self.pos] != char:
            raise PostgrestFilterError(f"Expected {char!r} at {self.pos} in {self.text!r}")
        self.pos += 1


def parse_filter_expression(text: str) -> list[FilterNode]:
    """Parse a comma separated PostgREST filter expression."""
    if not text:
        raise PostgrestFilterError("Empty filter expression")
    return _Parser(text).parse()


def _coerce(column: Any, raw: str) -> Any:
    column_type = column.type
    try:
        if isinstance(column_type, DateTime):
            return datetime.fromisoformat(raw)
        if isinstance(column_type, Boolean):
            return raw.lower() == "true"
        if isinstance(column_type, Integer):
            number = float(raw)
            return int(number) if number.is_integer() else number
        if isinstance(column_type, Numeric) and not isinstance(column_type, Float):
            return Decimal(raw)
        if isinstance(column_type, Float):
            return float(raw)
    except ValueError as exc:
        raise PostgrestFilterError(f"Invalid value {raw!r} for column {column.key}") from exc
    return raw


def _condition_clause(model: Any, condition: FilterCondition) -> ColumnElement[bool]:
    table = model.__table__
    if condition.column not in table.c:
        raise PostgrestFilterError(f"Unknown column {condition.column!r}")
    column = table.c[condition.column]

    if condition.operator == "is":
        if condition.value.lower() not in _IS_VALUES:
            raise PostgrestFilterError(f"Invalid is-value {condition.value!r}")
        return column.is_(_IS_VALUES[condition.value.lower()])

    comparison = _COMPARISONS.get(condition.operator)
    if comparison is None:
        raise PostgrestFilterError(f"Unsupported operator {condition.operator!r}")
    return comparison(column, _coerce(column, condition.value))


def to_clause(model: Any, nodes: list[FilterNode], kind: str = "or") -> ColumnElement[bool]:
    """Combine parsed filter nodes into one SQLAlchemy clause."""
    clauses = []
    for node in nodes:
        if isinstance(node, FilterGroup):
            clauses.append(to_clause(model, list(node.children), node.kind))
        else:
            clauses.append(_condition_clause(model, node))
    combine = and_ if kind == "and" else or_
    return combine(*clauses)


def apply_or_filters(query: Any, model: Any, conditions: list[str]) -> Any:
    """Apply OR-ed filter strings to a legacy ``Query`` or a ``Select``.

    An empty ``conditions`` list leaves the query untouched.
    """
    if not conditions:
        return query
    clause = to_clause(model, parse_filter_expression(",".join(conditions)))
    return query.filter(clause)
