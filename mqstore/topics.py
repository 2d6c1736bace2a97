"""MQTT topic filter compilation.

Filters use ``/`` as the level separator, ``+`` for exactly one level and a
trailing ``#`` for zero or more levels. A filter is compiled into an anchored
regular expression understood by Python ``re``, PostgreSQL ``~``, MySQL
``REGEXP`` and the ``REGEXP`` function SQLAlchemy installs on SQLite
connections, so the same pattern is used in-process and in SQL.

Patterns run in dot-all mode and end in a negative lookahead instead of
``$``, since MQTT topics may contain newlines.

Filters whose first level is a wildcard never match topics starting with
``$`` (reserved for broker-internal topics).
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Sequence

from sqlalchemy import false, or_
from sqlalchemy.sql.elements import ColumnElement

from mqstore.errors import InvalidTopicFilterError

SEPARATOR = "/"
SINGLE_LEVEL = "+"
MULTI_LEVEL = "#"

_ONE_LEVEL = "[^/]*"
_ONE_LEVEL_NO_DOLLAR = "([^$/][^/]*)?"
_ANY_LEVELS_NO_DOLLAR = "([^$].*)?"
_TRAILING_LEVELS = "(/.*)?"

# `.` matches newlines; `$` would also match before a trailing newline
_PREFIX = "(?s)^"
_END = "(?!.)"

# Characters with a meaning in any of the supported regex flavours
_METACHARACTERS = frozenset("\\.^$*+?()[]{}|")


def escape_literal(level: str) -> str:
    return "".join("\\" + ch if ch in _METACHARACTERS else ch for ch in level)


def has_wildcards(topic_filter: str) -> bool:
    return SINGLE_LEVEL in topic_filter or MULTI_LEVEL in topic_filter


def validate_filter(topic_filter: str) -> None:
    if not topic_filter:
        raise InvalidTopicFilterError(topic_filter, "empty filter")
    if "\x00" in topic_filter:
        raise InvalidTopicFilterError(topic_filter, "contains NUL")
    levels = topic_filter.split(SEPARATOR)
    last = len(levels) - 1
    for index, level in enumerate(levels):
        if MULTI_LEVEL in level:
            if level != MULTI_LEVEL:
                raise InvalidTopicFilterError(topic_filter, "'#' must occupy a whole level")
            if index != last:
                raise InvalidTopicFilterError(topic_filter, "'#' is only allowed as the last level")
        if SINGLE_LEVEL in level and level != SINGLE_LEVEL:
            raise InvalidTopicFilterError(topic_filter, "'+' must occupy a whole level")


@lru_cache(maxsize=1024)
def compile_filter(topic_filter: str) -> str:
    """Translate an MQTT filter into an anchored regular expression."""
    validate_filter(topic_filter)
    levels = topic_filter.split(SEPARATOR)
    multi = levels[-1] == MULTI_LEVEL
    if multi:
        levels = levels[:-1]

    if not levels:
        return f"{_PREFIX}{_ANY_LEVELS_NO_DOLLAR}{_END}"

    parts = []
    for index, level in enumerate(levels):
        if level == SINGLE_LEVEL:
            parts.append(_ONE_LEVEL_NO_DOLLAR if index == 0 else _ONE_LEVEL)
        else:
            parts.append(escape_literal(level))
    body = SEPARATOR.join(parts)
    if multi:
        body += _TRAILING_LEVELS
    return f"{_PREFIX}{body}{_END}"


def matches(topic_filter: str, topic: str) -> bool:
    if not has_wildcards(topic_filter):
        validate_filter(topic_filter)
        return topic_filter == topic
    return re.search(compile_filter(topic_filter), topic) is not None


class TopicMatcher:
    """A set of filters evaluated together as a single OR condition."""

    def __init__(self, filters: Iterable[str]):
        exact: list[str] = []
        patterns: list[str] = []
        for topic_filter in dict.fromkeys(filters):
            if has_wildcards(topic_filter):
                patterns.append(compile_filter(topic_filter))
            else:
                validate_filter(topic_filter)
                exact.append(topic_filter)
        self.exact: Sequence[str] = tuple(exact)
        self.patterns: Sequence[str] = tuple(patterns)

    def __bool__(self) -> bool:
        return bool(self.exact or self.patterns)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(exact={list(self.exact)}, patterns={list(self.patterns)})"

    def clause(self, column: ColumnElement) -> ColumnElement:
        conditions: list[ColumnElement] = []
        if len(self.exact) == 1:
            conditions.append(column == self.exact[0])
        elif self.exact:
            conditions.append(column.in_(self.exact))
        conditions.extend(column.regexp_match(pattern) for pattern in self.patterns)
        if not conditions:
            return false()
        return or_(*conditions)

    def matches(self, topic: str) -> bool:
        if topic in self.exact:
            return True
        return any(re.search(pattern, topic) is not None for pattern in self.patterns)


__all__ = [
    "SEPARATOR",
    "SINGLE_LEVEL",
    "MULTI_LEVEL",
    "escape_literal",
    "has_wildcards",
    "validate_filter",
    "compile_filter",
    "matches",
    "TopicMatcher",
]
