# src/document_references/parsing/expression_block.py

"""
Lexer rules for embedded ``#{...}`` blocks.

A block is read in the exclusive ``expression`` state, which counts braces
and skips quoted strings, so a block may contain documents and literals with
braces of its own. Lexers mixing these rules in call
:meth:`ExpressionBlockRules._begin_expression` from the rule matching the
block opener; the closing brace produces one EXPRESSION token (``?#{``,
``:#{``) or INLINE_EXPRESSION token (``#{``) whose value is the block source.
"""

import ply.lex as lex

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.expression_lexer import QUOTED_STRING


class ExpressionBlockRules:
    """Rules of the exclusive ``expression`` state and the lexer plumbing."""

    states = (("expression", "exclusive"),)

    t_expression_ignore = ""

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def _begin_expression(self, t: lex.LexToken) -> None:
        t.lexer.expression_offset = t.lexpos
        t.lexer.expression_start = t.lexpos + len(t.value)
        t.lexer.expression_prefix = t.value[:-2]
        t.lexer.expression_depth = 1
        t.lexer.begin("expression")

    @lex.TOKEN(QUOTED_STRING)
    def t_expression_string(self, t: lex.LexToken) -> None:
        pass

    def t_expression_lbrace(self, t: lex.LexToken) -> None:
        r"\{"
        t.lexer.expression_depth += 1

    def t_expression_rbrace(self, t: lex.LexToken) -> lex.LexToken:
        r"\}"
        t.lexer.expression_depth -= 1
        if t.lexer.expression_depth:
            return None
        t.value = t.lexer.lexdata[t.lexer.expression_start:t.lexpos]
        t.type = "EXPRESSION" if t.lexer.expression_prefix else "INLINE_EXPRESSION"
        t.lexpos = t.lexer.expression_offset
        t.lexer.begin("INITIAL")
        return t

    def t_expression_body(self, t: lex.LexToken) -> None:
        r"[^{}'\"]+"

    def t_expression_error(self, t: lex.LexToken) -> None:
        # A lone quote character inside the block
        t.lexer.skip(1)

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def reset(self) -> None:
        """Return to the initial state, e.g. after input ended inside a block."""
        self.lexer.begin("INITIAL")

    def input(self, data: str) -> None:
        """Set the input string to tokenize, starting in the initial state."""
        self.reset()
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
        self.check_complete(data)
        return tokens

    def check_complete(self, data: str) -> None:
        """Raise if the input ended inside an expression block."""
        if self.lexer.current_state() != "INITIAL":
            raise ExpressionEvaluationException(
                f"Unterminated expression starting at position "
                f"{self.lexer.expression_offset} in {data!r}"
            )
