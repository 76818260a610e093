"""Translate ``?`` positional placeholders into psycopg2's pyformat style.

Statement text is split into code, literal and comment segments first, so a ``?`` is only a
placeholder where PostgreSQL would parse it as one. Literals cover quoted strings (including
``E''`` escape strings), quoted identifiers and dollar-quoted bodies. Comments cover ``--`` lines
and nested ``/* */`` blocks. In code, ``??`` stands for a literal ``?`` so JSONB operators such
as ``?`` and ``?|`` stay writable.
"""

from __future__ import annotations

import re
from typing import List, NamedTuple, Tuple

CODE = "code"
LITERAL = "literal"
COMMENT = "comment"

_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z_0-9]*)?\$")


class SqlSegment(NamedTuple):
    """A contiguous run of statement text and how PostgreSQL reads it."""

    text: str
    kind: str


def _is_word(char: str) -> bool:
    return char.isalnum() or char == "_"


def _quoted_end(sql: str, start: int, quote: str, backslash_escapes: bool) -> int:
    index = start + 1
    while index < len(sql):
        char = sql[index]
        if backslash_escapes and char == "\\":
            index += 2
            continue
        if char == quote:
            if sql.startswith(quote, index + 1):
                index += 2
                continue
            return index + 1
        index += 1
    return len(sql)


def _block_comment_end(sql: str, start: int) -> int:
    depth = 1
    index = start + 2
    while index < len(sql) and depth:
        if sql.startswith("/*", index):
            depth += 1
            index += 2
        elif sql.startswith("*/", index):
            depth -= 1
            index += 2
        else:
            index += 1
    return index


def split_sql(sql: str) -> List[SqlSegment]:
    """Split ``sql`` into code, literal and comment segments that concatenate back to ``sql``.

    Unterminated literals and comments run to the end of the text; the server reports them.
    """

    segments: List[SqlSegment] = []
    start = index = 0

    while index < len(sql):
        char = sql[index]
        begin = index
        end = -1
        kind = CODE

        if sql.startswith("--", index):
            newline = sql.find("\n", index)
            end = len(sql) if newline == -1 else newline
            kind = COMMENT
        elif sql.startswith("/*", index):
            end = _block_comment_end(sql, index)
            kind = COMMENT
        elif char == "'":
            escape_string = (
                index > 0
                and sql[index - 1] in "eE"
                and (index < 2 or not _is_word(sql[index - 2]))
            )
            if escape_string:
                begin = index - 1
            end = _quoted_end(sql, index, "'", escape_string)
            kind = LITERAL
        elif char == '"':
            end = _quoted_end(sql, index, '"', False)
            kind = LITERAL
        elif char == "$" and (index == 0 or not (_is_word(sql[index - 1]) or sql[index - 1] == "$")):
            match = _DOLLAR_TAG.match(sql, index)
            if match:
                tag = match.group()
                closing = sql.find(tag, match.end())
                end = len(sql) if closing == -1 else closing + len(tag)
                kind = LITERAL

        if end < 0:
            index += 1
            continue
        if begin > start:
            segments.append(SqlSegment(sql[start:begin], CODE))
        segments.append(SqlSegment(sql[begin:end], kind))
        start = index = end

    if start < len(sql):
        segments.append(SqlSegment(sql[start:], CODE))
    return segments


def translate_qmark(sql: str) -> Tuple[str, int]:
    """Return ``sql`` with ``?`` rewritten to ``%s`` and the placeholder count.

    Every literal ``%`` is doubled, inside literals and comments too, because psycopg2
    interpolates the whole statement text whenever parameters are supplied.
    """

    parts: List[str] = []
    placeholders = 0

    for segment in split_sql(sql):
        text = segment.text.replace("%", "%%")
        if segment.kind != CODE:
            parts.append(text)
            continue
        index = 0
        while index < len(text):
            char = text[index]
            if text.startswith("??", index):
                parts.append("?")
                index += 2
                continue
            if char == "?":
                placeholders += 1
                parts.append("%s")
            else:
                parts.append(char)
            index += 1

    return "".join(parts), placeholders


__all__ = ["CODE", "COMMENT", "LITERAL", "SqlSegment", "split_sql", "translate_qmark"]
