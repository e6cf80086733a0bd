"""Escaping of literals and identifiers for use in SQL text.

Prefer parameterized queries where possible; never escape parameters of one.
"""

from __future__ import annotations


def escape_literal(input: str) -> str:
    """Escape a literal and surround it with single quotes.

    If the input contains backslashes the result has the form `` E'...'`` so it
    is safe regardless of ``standard_conforming_strings``.
    """
    return _escape(input, as_ident=False)


def escape_identifier(input: str) -> str:
    """Escape an identifier and surround it with double quotes."""
    return _escape(input, as_ident=True)


def _escape(text: str, as_ident: bool) -> str:
    quote = '"' if as_ident else "'"
    has_backslashes = "\\" in text

    prefix = ""
    body = text.replace(quote, quote * 2)
    if not as_ident and has_backslashes:
        # A leading space guards against interpolation right after an identifier.
        prefix = " E"
        body = body.replace("\\", "\\\\")

    return f"{prefix}{quote}{body}{quote}"