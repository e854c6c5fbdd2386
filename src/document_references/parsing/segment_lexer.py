# src/document_references/parsing/segment_lexer.py

"""Lexer splitting strings into literal text, placeholders and expressions."""

import threading
from functools import lru_cache
from typing import Any, Tuple

import ply.lex as lex

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.expression_block import ExpressionBlockRules

Segment = Tuple[str, Any]


class SegmentLexer(ExpressionBlockRules):
    """
    Lexer for the content of a quoted template string or a plain template.

    ``?#{...}`` and ``:#{...}`` produce EXPRESSION tokens, a bare ``#{...}``
    produces INLINE_EXPRESSION and ``?N`` produces PLACEHOLDER. Everything
    else is TEXT.
    """

    tokens = ["TEXT", "PLACEHOLDER", "EXPRESSION", "INLINE_EXPRESSION"]

    t_ignore = ""

    def t_EXPRESSION(self, t: lex.LexToken) -> None:
        r"[?:]?\#\{"
        self._begin_expression(t)

    def t_PLACEHOLDER(self, t: lex.LexToken) -> lex.LexToken:
        r"\?\d+"
        t.value = int(t.value[1:])
        return t

    def t_TEXT(self, t: lex.LexToken) -> lex.LexToken:
        r"[^?:\#]+|[?:\#]"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise ExpressionEvaluationException(
            f"Illegal character {t.value[0]!r} at position {t.lexpos} in {t.lexer.lexdata!r}"
        )


_lexer = SegmentLexer()
_lexer.build()
_lexer_lock = threading.Lock()


@lru_cache(maxsize=512)
def split_segments(text: str) -> Tuple[Segment, ...]:
    """Split ``text`` into ``(token type, value)`` pairs."""
    with _lexer_lock:
        return tuple((tok.type, tok.value) for tok in _lexer.tokenize(text))
