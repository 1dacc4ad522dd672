from __future__ import annotations

from typing import Iterable, Mapping


def find_in_statement(statement: str, value: str) -> bool:
    """Literal, case-sensitive substring test."""
    if not value:
        return False
    return value in statement


def remove_value_from_statement(statement: str, value: str | None) -> str:
    """Drop the first literal occurrence of `value` from `statement`.

    This is plain substring removal: a value that also appears inside a larger
    token is cut out of that token if it occurs there first.
    """
    if not value:
        return statement
    return statement.replace(value, "", 1)


def remove_values_from_statement(statement: str, values: Mapping[str, str] | Iterable[str]) -> str:
    """Strip every resolved value from the statement, in insertion order."""
    items = values.values() if isinstance(values, Mapping) else values
    for value in items:
        statement = remove_value_from_statement(statement, value)
    return statement


def is_single_word(text: str) -> bool:
    return " " not in text.strip()
