# tests/parsing/test_template_parser.py

import pytest

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.parsing.segment_lexer import split_segments
from document_references.parsing.template_lexer import TemplateLexer, unescape
from document_references.parsing.template_parser import (ArrayNode,
                                                         DocumentNode,
                                                         ExpressionNode,
                                                         ObjectIdNode,
                                                         PlaceholderNode,
                                                         StringNode,
                                                         ValueNode,
                                                         parse_template)


@pytest.fixture
def lexer():
    lexer = TemplateLexer()
    lexer.build()
    return lexer


def test_lexer_reads_expression_block_as_one_token(lexer):
    tokens = lexer.tokenize("{ a : ?#{ { 'k' : '}' } } }")
    assert [tok.type for tok in tokens] == ["LBRACE", "WORD", "COLON", "EXPRESSION", "RBRACE"]
    assert tokens[3].value == " { 'k' : '}' } "


def test_lexer_reports_unterminated_block(lexer):
    with pytest.raises(ExpressionEvaluationException):
        lexer.tokenize("{ a : :#{ { #target }")


def test_lexer_recovers_after_unterminated_block(lexer):
    with pytest.raises(ExpressionEvaluationException):
        lexer.tokenize("?#{ open")
    assert [tok.type for tok in lexer.tokenize("?0")] == ["PLACEHOLDER"]


def test_parse_document():
    tree = parse_template("{ name : 'DVA', 'n' : 1, on : true, ids : [ ?0, ?#{#target} ], }")
    assert tree == DocumentNode(
        (
            (ValueNode("name"), StringNode("DVA")),
            (StringNode("n"), ValueNode(1)),
            (ValueNode("on"), ValueNode(True)),
            (ValueNode("ids"), ArrayNode((PlaceholderNode(0), ExpressionNode("#target")))),
        )
    )


def test_parse_object_id_and_scalars():
    assert parse_template("ObjectId('?0')") == ObjectIdNode(StringNode("?0"))
    assert parse_template("-2.5e3") == ValueNode(-2500.0)
    assert parse_template("[]") == ArrayNode(())
    assert parse_template("{}") == DocumentNode(())


def test_placeholder_and_expression_keys():
    tree = parse_template("{ ?0 : 1, :#{#key} : 2 }")
    assert [key for key, _ in tree.members] == [PlaceholderNode(0), ExpressionNode("#key")]


@pytest.mark.parametrize("template", ["", "{", "{ a 1 }", "[1,,2]", "{ a : 1 } }", "ObjectId(1)"])
def test_parse_template_syntax_errors(template):
    with pytest.raises(ExpressionEvaluationException):
        parse_template(template)


def test_unescape():
    assert unescape(r"café\n\'q\'", "t") == "café\n'q'"
    with pytest.raises(ExpressionEvaluationException):
        unescape(r"\u12", "t")


@pytest.mark.parametrize(
    "text, segments",
    [
        ("plain", (("TEXT", "plain"),)),
        ("?1", (("PLACEHOLDER", 1),)),
        ("a?0", (("TEXT", "a"), ("PLACEHOLDER", 0))),
        ("?#{ '}' + #target } tail", (("EXPRESSION", " '}' + #target "), ("TEXT", " tail"))),
        ("#{#target}", (("INLINE_EXPRESSION", "#target"),)),
        ("x:#{#a}", (("TEXT", "x"), ("EXPRESSION", "#a"))),
    ],
)
def test_split_segments(text, segments):
    assert split_segments(text) == segments


def test_split_segments_unterminated():
    with pytest.raises(ExpressionEvaluationException):
        split_segments("?#{ #target")
