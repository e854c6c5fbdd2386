# src/document_references/base/codec.py

import logging
from typing import Any, Dict, Tuple

from bson import json_util
from bson.objectid import ObjectId

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.base.expression import ParameterBindingContext
from document_references.base.utils import prepare_for_binding
from document_references.parsing.segment_lexer import Segment, split_segments
from document_references.parsing.template_parser import (ArrayNode,
                                                         DocumentNode,
                                                         ExpressionNode,
                                                         ObjectIdNode,
                                                         PlaceholderNode,
                                                         StringNode,
                                                         TemplateNode,
                                                         parse_template)

log = logging.getLogger(__name__)


class ParameterBindingDocumentCodec:
    """
    Decodes query templates into filter documents.

    Templates use relaxed JSON: keys may be unquoted, strings may use single
    quotes. Values are bound while decoding:

    - ``?0`` binds positional parameter 0
    - ``?#{expr}`` / ``:#{expr}`` evaluates ``expr`` through the binding
    - inside a quoted string, a string that is exactly one placeholder keeps
      the bound value's type, otherwise bound values are rendered into the text

    Extended JSON (``{"$oid": ...}``, ``{"$date": ...}``) and the shell form
    ``ObjectId('...')`` decode to their BSON types.
    """

    def decode(self, template: str, binding: ParameterBindingContext) -> Dict[str, Any]:
        """Decode a template that must produce a document."""
        value = self.decode_value(template, binding)
        if not isinstance(value, dict):
            raise ExpressionEvaluationException(
                f"Template {template!r} did not decode to a document but to {type(value).__name__}"
            )
        return value

    def decode_value(self, template: str, binding: ParameterBindingContext) -> Any:
        """Decode a template into any JSON value."""
        decoded = _TemplateBinder(binding).bind(parse_template(template))
        log.debug(f"Decoded template {template!r} -> {decoded!r}")
        return decoded


class _TemplateBinder:
    def __init__(self, binding: ParameterBindingContext):
        self._binding = binding

    def bind(self, node: TemplateNode) -> Any:
        if isinstance(node, DocumentNode):
            return json_util.object_hook(
                {self._bind_key(key): self.bind(value) for key, value in node.members}
            )
        if isinstance(node, ArrayNode):
            return [self.bind(item) for item in node.items]
        if isinstance(node, StringNode):
            return self._bind_string(node.text)
        if isinstance(node, PlaceholderNode):
            return prepare_for_binding(self._binding.bind_parameter(node.index))
        if isinstance(node, ExpressionNode):
            return prepare_for_binding(self._binding.evaluate_expression(node.source))
        if isinstance(node, ObjectIdNode):
            return ObjectId(self.bind(node.argument))
        return node.value

    def _bind_key(self, node: TemplateNode) -> str:
        if isinstance(node, StringNode):
            return self._interpolate(split_segments(node.text))
        if isinstance(node, PlaceholderNode):
            return str(self._binding.bind_parameter(node.index))
        if isinstance(node, ExpressionNode):
            return str(self._binding.evaluate_expression(node.source))
        return node.value

    def _bind_string(self, content: str) -> Any:
        segments = split_segments(content)
        if len(segments) == 1:
            kind, value = segments[0]
            if kind == "PLACEHOLDER":
                return prepare_for_binding(self._binding.bind_parameter(value))
            if kind == "EXPRESSION":
                return prepare_for_binding(self._binding.evaluate_expression(value))
        return self._interpolate(segments)

    def _interpolate(self, segments: Tuple[Segment, ...]) -> str:
        rendered = []
        for kind, value in segments:
            if kind == "PLACEHOLDER":
                bound = self._binding.bind_parameter(value)
            elif kind == "EXPRESSION":
                bound = self._binding.evaluate_expression(value)
            elif kind == "INLINE_EXPRESSION":
                bound = "#{" + value + "}"
            else:
                bound = value
            rendered.append("" if bound is None else str(bound))
        return "".join(rendered)
