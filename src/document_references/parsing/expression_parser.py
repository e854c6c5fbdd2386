# src/document_references/parsing/expression_parser.py

"""Parser for the property-navigation expression language of ``#{...}`` blocks."""

import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

import ply.yacc as yacc

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.expression_lexer import ExpressionLexer

_KEYWORD_VALUES = {"true": True, "false": False, "null": None}


@dataclass(frozen=True)
class Literal:
    """A number, string, boolean or null literal."""

    value: Any


@dataclass(frozen=True)
class Variable:
    """``#name``, a variable of the evaluation context."""

    name: str


@dataclass(frozen=True)
class RootProperty:
    """A bare name, read from the root object."""

    name: str


@dataclass(frozen=True)
class Parameter:
    """``[N]``, the positional parameter N."""

    index: int


@dataclass(frozen=True)
class PropertyAccess:
    target: "ExpressionNode"
    name: str


@dataclass(frozen=True)
class IndexAccess:
    target: "ExpressionNode"
    key: Union[int, str]


@dataclass(frozen=True)
class Addition:
    left: "ExpressionNode"
    right: "ExpressionNode"


ExpressionNode = Union[
    Literal, Variable, RootProperty, Parameter, PropertyAccess, IndexAccess, Addition
]


class ExpressionParser:
    """Parser producing an :data:`ExpressionNode` tree from an expression string."""

    tokens = ExpressionLexer.tokens

    def __init__(self) -> None:
        self.lexer = ExpressionLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._source = ""

    def p_expression_sum(self, p: yacc.YaccProduction) -> None:
        """expression : expression PLUS term"""
        p[0] = Addition(p[1], p[3])

    def p_expression_term(self, p: yacc.YaccProduction) -> None:
        """expression : term"""
        p[0] = p[1]

    def p_term_primary(self, p: yacc.YaccProduction) -> None:
        """term : primary"""
        p[0] = p[1]

    def p_term_property(self, p: yacc.YaccProduction) -> None:
        """term : term DOT NAME"""
        p[0] = PropertyAccess(p[1], p[3])

    def p_term_index(self, p: yacc.YaccProduction) -> None:
        """term : term LBRACKET INTEGER RBRACKET
                | term LBRACKET STRING RBRACKET"""
        p[0] = IndexAccess(p[1], p[3])

    def p_primary_literal(self, p: yacc.YaccProduction) -> None:
        """primary : INTEGER
                   | FLOAT
                   | STRING"""
        p[0] = Literal(p[1])

    def p_primary_keyword(self, p: yacc.YaccProduction) -> None:
        """primary : TRUE
                   | FALSE
                   | NULL"""
        p[0] = Literal(_KEYWORD_VALUES[p[1]])

    def p_primary_variable(self, p: yacc.YaccProduction) -> None:
        """primary : VARIABLE"""
        p[0] = Variable(p[1])

    def p_primary_name(self, p: yacc.YaccProduction) -> None:
        """primary : NAME"""
        p[0] = RootProperty(p[1])

    def p_primary_parameter(self, p: yacc.YaccProduction) -> None:
        """primary : LBRACKET INTEGER RBRACKET"""
        p[0] = Parameter(p[2])

    def p_primary_group(self, p: yacc.YaccProduction) -> None:
        """primary : LPAREN expression RPAREN"""
        p[0] = p[2]

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise ExpressionEvaluationException(
                f"Unexpected token {p.value!r} at position {p.lexpos} in expression {self._source!r}"
            )
        raise ExpressionEvaluationException(f"Unexpected end of expression {self._source!r}")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="expression", **kwargs)

    def parse(self, data: str) -> ExpressionNode:
        """Parse an expression string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._source = data
        return self.parser.parse(data, lexer=self.lexer.lexer)


_parser = ExpressionParser()
_parser_lock = threading.Lock()


@lru_cache(maxsize=512)
def parse_expression(expression: str) -> ExpressionNode:
    """Parse ``expression`` with the shared parser; trees are cached per string."""
    with _parser_lock:
        return _parser.parse(expression)
