# src/document_references/parsing/template_lexer.py

"""Lexer for the relaxed JSON of lookup templates."""

import re

import ply.lex as lex

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.expression_block import ExpressionBlockRules
from document_references.parsing.expression_lexer import QUOTED_STRING

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "/": "/"}


def unescape(content: str, source: str) -> str:
    """Resolve the backslash escapes of a quoted template string."""

    def replace(match: "re.Match") -> str:
        escaped = match.group(1)
        if len(escaped) == 5:
            return chr(int(escaped[1:], 16))
        if escaped == "u":
            raise ExpressionEvaluationException(
                f"Invalid unicode escape, expected four hex digits after \\u in template {source!r}"
            )
        return _ESCAPES.get(escaped, escaped)

    return _ESCAPE_RE.sub(replace, content)


class TemplateLexer(ExpressionBlockRules):
    """Lexer for tokenizing lookup templates."""

    # Reserved words
    reserved = {
        "true": "TRUE",
        "false": "FALSE",
        "null": "NULL",
        "ObjectId": "OBJECT_ID",
    }

    # Token list
    tokens = [
        "EXPRESSION",
        "PLACEHOLDER",
        "NUMBER",
        "STRING",
        "WORD",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
        "LPAREN",
        "RPAREN",
        "COLON",
        "COMMA",
    ] + list(reserved.values())

    # Simple tokens
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COLON = r":"
    t_COMMA = r","

    t_ignore = " \t\r\n"

    def t_EXPRESSION(self, t: lex.LexToken) -> None:
        r"[?:]\#\{"
        self._begin_expression(t)

    def t_PLACEHOLDER(self, t: lex.LexToken) -> lex.LexToken:
        r"\?\d+"
        t.value = int(t.value[1:])
        return t

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
        text = t.value
        t.value = float(text) if any(c in text for c in ".eE") else int(text)
        return t

    @lex.TOKEN(QUOTED_STRING)
    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        t.value = unescape(t.value[1:-1], t.lexer.lexdata)
        return t

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_$][A-Za-z0-9_$.\-]*"
        t.type = self.reserved.get(t.value, "WORD")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise ExpressionEvaluationException(
            f"Illegal character {t.value[0]!r} at position {t.lexpos} "
            f"in template {t.lexer.lexdata!r}"
        )
