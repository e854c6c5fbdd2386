# src/document_references/parsing/template_parser.py

"""Parser for the relaxed JSON of lookup templates."""

import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Tuple, Union

import ply.yacc as yacc

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.template_lexer import TemplateLexer

_KEYWORD_VALUES = {"true": True, "false": False, "null": None}


@dataclass(frozen=True)
class ValueNode:
    """A literal needing no binding: number, boolean, null or bare field name."""

    value: Any


@dataclass(frozen=True)
class StringNode:
    """A quoted string; its content may still contain placeholders."""

    text: str


@dataclass(frozen=True)
class PlaceholderNode:
    index: int


@dataclass(frozen=True)
class ExpressionNode:
    source: str


@dataclass(frozen=True)
class ObjectIdNode:
    argument: StringNode


@dataclass(frozen=True)
class ArrayNode:
    items: Tuple["TemplateNode", ...]


@dataclass(frozen=True)
class DocumentNode:
    members: Tuple[Tuple["TemplateNode", "TemplateNode"], ...]


TemplateNode = Union[
    ValueNode, StringNode, PlaceholderNode, ExpressionNode, ObjectIdNode, ArrayNode, DocumentNode
]


class TemplateParser:
    """Parser producing a :data:`TemplateNode` tree from a lookup template."""

    tokens = TemplateLexer.tokens

    def __init__(self) -> None:
        self.lexer = TemplateLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._source = ""

    def p_template(self, p: yacc.YaccProduction) -> None:
        """template : value"""
        p[0] = p[1]

    def p_value_composite(self, p: yacc.YaccProduction) -> None:
        """value : document
                 | array"""
        p[0] = p[1]

    def p_value_string(self, p: yacc.YaccProduction) -> None:
        """value : STRING"""
        p[0] = StringNode(p[1])

    def p_value_placeholder(self, p: yacc.YaccProduction) -> None:
        """value : PLACEHOLDER"""
        p[0] = PlaceholderNode(p[1])

    def p_value_expression(self, p: yacc.YaccProduction) -> None:
        """value : EXPRESSION"""
        p[0] = ExpressionNode(p[1])

    def p_value_number(self, p: yacc.YaccProduction) -> None:
        """value : NUMBER"""
        p[0] = ValueNode(p[1])

    def p_value_keyword(self, p: yacc.YaccProduction) -> None:
        """value : TRUE
                 | FALSE
                 | NULL"""
        p[0] = ValueNode(_KEYWORD_VALUES[p[1]])

    def p_value_object_id(self, p: yacc.YaccProduction) -> None:
        """value : OBJECT_ID LPAREN STRING RPAREN"""
        p[0] = ObjectIdNode(StringNode(p[3]))

    def p_document_empty(self, p: yacc.YaccProduction) -> None:
        """document : LBRACE RBRACE"""
        p[0] = DocumentNode(())

    def p_document(self, p: yacc.YaccProduction) -> None:
        """document : LBRACE members RBRACE
                    | LBRACE members COMMA RBRACE"""
        p[0] = DocumentNode(tuple(p[2]))

    def p_members_single(self, p: yacc.YaccProduction) -> None:
        """members : member"""
        p[0] = [p[1]]

    def p_members_multiple(self, p: yacc.YaccProduction) -> None:
        """members : members COMMA member"""
        p[0] = p[1] + [p[3]]

    def p_member(self, p: yacc.YaccProduction) -> None:
        """member : key COLON value"""
        p[0] = (p[1], p[3])

    def p_key_name(self, p: yacc.YaccProduction) -> None:
        """key : WORD
               | NUMBER
               | TRUE
               | FALSE
               | NULL
               | OBJECT_ID"""
        p[0] = ValueNode(str(p[1]))

    def p_key_string(self, p: yacc.YaccProduction) -> None:
        """key : STRING"""
        p[0] = StringNode(p[1])

    def p_key_placeholder(self, p: yacc.YaccProduction) -> None:
        """key : PLACEHOLDER"""
        p[0] = PlaceholderNode(p[1])

    def p_key_expression(self, p: yacc.YaccProduction) -> None:
        """key : EXPRESSION"""
        p[0] = ExpressionNode(p[1])

    def p_array_empty(self, p: yacc.YaccProduction) -> None:
        """array : LBRACKET RBRACKET"""
        p[0] = ArrayNode(())

    def p_array(self, p: yacc.YaccProduction) -> None:
        """array : LBRACKET elements RBRACKET
                 | LBRACKET elements COMMA RBRACKET"""
        p[0] = ArrayNode(tuple(p[2]))

    def p_elements_single(self, p: yacc.YaccProduction) -> None:
        """elements : value"""
        p[0] = [p[1]]

    def p_elements_multiple(self, p: yacc.YaccProduction) -> None:
        """elements : elements COMMA value"""
        p[0] = p[1] + [p[3]]

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise ExpressionEvaluationException(
                f"Unexpected {p.value!r} at position {p.lexpos} in template {self._source!r}"
            )
        raise ExpressionEvaluationException(f"Unexpected end of template {self._source!r}")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="template", **kwargs)

    def parse(self, data: str) -> TemplateNode:
        """Parse a lookup template."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._source = data
        self.lexer.reset()
        tree = self.parser.parse(data, lexer=self.lexer.lexer)
        self.lexer.check_complete(data)
        return tree


_parser = TemplateParser()
_parser_lock = threading.Lock()


@lru_cache(maxsize=512)
def parse_template(template: str) -> TemplateNode:
    """Parse ``template`` with the shared parser; trees are cached per string."""
    with _parser_lock:
        return _parser.parse(template)
