"""
Query normalization: plain SQL string or ``[sql_template, params]`` pair -> Statement.

Lexing follows the target dialect:

- MySQL: backslash escapes inside '...' and "..." literals; ``#`` starts a line comment.
- PostgreSQL: backslash is literal except in ``E'...'`` strings; ``$tag$ ... $tag$``
  dollar quoting (empty tag included).
"""

import re
from typing import Any, NamedTuple

from querypilot.errors import ValidationError
from querypilot.models import Dialect

_QUERY_REQUIRED = "Query is required and must be a string or a [query, params] pair"
_QUOTES = frozenset("'\"`")
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z_0-9]*)?\$")


class Statement(NamedTuple):
    """One SQL statement and its bind parameters (None for a plain string query)."""

    sql: str
    params: list[Any] | tuple[Any, ...] | dict[str, Any] | None = None


def parse_query(query: Any, dialect: Dialect | None = None) -> Statement:
    """
    Validate ``query`` and return a Statement.

    - str: must not be blank.
    - list/tuple of two items: (non-blank sql template, list/tuple/dict of params).
    - The SQL must contain exactly one statement (a trailing ``;`` is fine), counted
      with ``dialect``'s quoting and comment rules.
    """
    if isinstance(query, str):
        sql, params = query, None
    elif isinstance(query, list | tuple) and len(query) == 2:
        sql, params = query
        if not isinstance(params, list | tuple | dict):
            raise ValidationError(
                "Query parameters must be a list, tuple or dict of bind values"
            )
    else:
        raise ValidationError(_QUERY_REQUIRED)

    if not isinstance(sql, str) or not sql.strip():
        raise ValidationError("Valid SQL query is required")

    statements = split_statements(sql, dialect)
    if not statements:
        raise ValidationError("Valid SQL query is required")
    if len(statements) > 1:
        raise ValidationError(
            f"Query contains {len(statements)} statements; "
            "only one statement per call is allowed"
        )
    return Statement(sql=sql.strip(), params=params)


def split_statements(sql: str, dialect: Dialect | None = None) -> list[str]:
    """Split SQL into statements on ``;`` outside literals and comments.

    Quoted literals and identifiers ('...', "...", `...`), dollar-quoted bodies and
    ``--`` / ``/* */`` comments are skipped, with the per-dialect rules from the module
    docstring. Without a dialect the PostgreSQL (standard SQL) rules apply. Fragments
    that hold nothing but comments and whitespace are dropped.
    """
    mysql = dialect is Dialect.MYSQL
    stmts: list[str] = []
    start = 0
    has_code = False
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]
        pair = sql[i : i + 2]
        tag = _dollar_tag(sql, i) if ch == "$" and not mysql else None
        if ch in _QUOTES:
            backslash = mysql or _is_escape_string(sql, i)
            i = _end_of_literal(sql, i, backslash=backslash)
            has_code = True
        elif tag:
            i = _end_of(sql, tag, i + len(tag))
            has_code = True
        elif pair == "--" or (mysql and ch == "#"):
            i = _end_of(sql, "\n", i + 1)
        elif pair == "/*":
            i = _end_of(sql, "*/", i + 2)
        elif ch == ";":
            if has_code:
                stmts.append(sql[start:i].strip())
            start, has_code = i + 1, False
            i += 1
        else:
            has_code = has_code or not ch.isspace()
            i += 1

    if has_code:
        stmts.append(sql[start:].strip())
    return stmts


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _dollar_tag(sql: str, pos: int) -> str | None:
    """The ``$tag$`` opening at ``pos``, or None (``$1`` placeholders, ``a$b`` names)."""
    if pos > 0 and _is_word_char(sql[pos - 1]):
        return None
    m = _DOLLAR_TAG.match(sql, pos)
    return m.group(0) if m else None


def _is_escape_string(sql: str, pos: int) -> bool:
    """True for the quote of a PostgreSQL ``E'...'`` escape string."""
    if sql[pos] != "'" or pos == 0 or sql[pos - 1] not in "eE":
        return False
    return pos == 1 or not _is_word_char(sql[pos - 2])


def _end_of(sql: str, marker: str, pos: int) -> int:
    """Index just past the next ``marker`` at or after ``pos``; end of input if absent."""
    found = sql.find(marker, pos)
    return len(sql) if found == -1 else found + len(marker)


def _end_of_literal(sql: str, pos: int, *, backslash: bool) -> int:
    """Index just past the quoted literal that opens at ``pos``.

    A doubled quote character stays inside the literal. With ``backslash`` a
    backslash escapes the next character (never inside backtick identifiers).
    """
    quote = sql[pos]
    escapes = backslash and quote != "`"
    i = pos + 1
    while i < len(sql):
        c = sql[i]
        if c == "\\" and escapes:
            i += 2
        elif c != quote:
            i += 1
        elif sql[i + 1 : i + 2] == quote:
            i += 2
        else:
            return i + 1
    return len(sql)
