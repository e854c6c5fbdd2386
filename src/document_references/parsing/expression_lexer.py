# src/document_references/parsing/expression_lexer.py

"""Lexer for the property-navigation expression language of ``#{...}`` blocks."""

import re

import ply.lex as lex

from document_references.base.exceptions import ExpressionEvaluationException

QUOTED_STRING = r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\""


class ExpressionLexer:
    """Lexer for tokenizing reference expressions."""

    # Reserved keywords
    reserved = {
        "true": "TRUE",
        "false": "FALSE",
        "null": "NULL",
    }

    # Token list
    tokens = [
        "VARIABLE",
        "NAME",
        "FLOAT",
        "INTEGER",
        "STRING",
        "DOT",
        "PLUS",
        "LBRACKET",
        "RBRACKET",
        "LPAREN",
        "RPAREN",
    ] + list(reserved.values())

    # Simple tokens
    t_DOT = r"\."
    t_PLUS = r"\+"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"

    t_ignore = " \t\r\n"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_VARIABLE(self, t: lex.LexToken) -> lex.LexToken:
        r"\#[A-Za-z_][A-Za-z0-9_]*"
        t.value = t.value[1:]  # Strip the # prefix
        return t

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+\.\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+"
        t.value = int(t.value)
        return t

    @lex.TOKEN(QUOTED_STRING)
    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        t.value = re.sub(r"\\(.)", r"\1", t.value[1:-1])
        return t

    def t_NAME(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_$][A-Za-z0-9_$]*"
        t.type = self.reserved.get(t.value, "NAME")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise ExpressionEvaluationException(
            f"Illegal character {t.value[0]!r} at position {t.lexpos} "
            f"in expression {t.lexer.lexdata!r}"
        )

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken:
        """Return the next token, or None at the end of input."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
