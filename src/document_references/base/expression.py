# src/document_references/base/expression.py

"""
Expression evaluation for reference templates.

A :class:`ParameterBindingContext` couples the positional values of the
reference being resolved with a lazily created :class:`EvaluationContext`
(root object plus named variables). Expressions are evaluated through a
pluggable :class:`~document_references.base.interfaces.ExpressionEvaluator`;
:class:`SimpleExpressionEvaluator` is the default and understands a small
property-navigation language::

    #target                 the reference value
    #target.collection      navigation into mappings or objects
    #this / #root           the root object (also the reference value)
    [0]                     positional parameter 0
    name.first              property path against the root object
    'pub-' + #target        string concatenation

The grammar lives in :mod:`document_references.parsing.expression_parser`.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from document_references.base.exceptions import ExpressionEvaluationException
from document_references.base.interfaces import ExpressionEvaluator
from document_references.parsing.expression_parser import (Addition,
                                                           ExpressionNode,
                                                           IndexAccess,
                                                           Literal, Parameter,
                                                           PropertyAccess,
                                                           RootProperty,
                                                           Variable,
                                                           parse_expression)
from document_references.parsing.segment_lexer import split_segments

log = logging.getLogger(__name__)

_MISSING = object()

_EXPRESSION_SEGMENTS = ("EXPRESSION", "INLINE_EXPRESSION")


def value_provider_for(source: Any) -> Callable[[int], Any]:
    """Positional values of a reference: the values of a mapping, or the value itself."""

    def provide(index: int) -> Any:
        if isinstance(source, Mapping):
            values = list(source.values())
            if index >= len(values):
                raise ExpressionEvaluationException(
                    f"No positional parameter ?{index}; the reference has {len(values)} value(s)."
                )
            return values[index]
        return source

    return provide


@dataclass
class EvaluationContext:
    """Root object and named variables an expression is evaluated against."""

    root: Any
    variables: Dict[str, Any] = field(default_factory=dict)

    def lookup_variable(self, name: str) -> Any:
        if name in self.variables:
            return self.variables[name]
        if name in ("this", "root"):
            return self.root
        raise ExpressionEvaluationException(f"Unknown variable '#{name}'")


class ParameterBindingContext:
    """
    Binding used while decoding one template against one reference value.

    The evaluation context is only built when an expression is actually
    evaluated.
    """

    def __init__(
        self,
        value_provider: Callable[[int], Any],
        evaluator: ExpressionEvaluator,
        evaluation_context_supplier: Callable[[], EvaluationContext],
    ):
        self._value_provider = value_provider
        self._evaluator = evaluator
        self._evaluation_context_supplier = evaluation_context_supplier
        self._evaluation_context: Optional[EvaluationContext] = None

    @property
    def evaluation_context(self) -> EvaluationContext:
        if self._evaluation_context is None:
            self._evaluation_context = self._evaluation_context_supplier()
        return self._evaluation_context

    def bind_parameter(self, index: int) -> Any:
        return self._value_provider(index)

    def evaluate_expression(self, expression: str) -> Any:
        log.debug(f"Evaluating expression: {expression!r}")
        return self._evaluator.evaluate_expression(expression, self)

    def evaluate_template(self, template: str) -> Any:
        """
        Evaluate a plain string that may embed ``#{...}`` blocks.

        A template consisting of exactly one block returns the typed result,
        a template without blocks is returned as is, anything else is
        rendered into a string.
        """
        segments = split_segments(template)
        if not any(kind in _EXPRESSION_SEGMENTS for kind, _ in segments):
            return template
        if len(segments) == 1:
            return self.evaluate_expression(segments[0][1])

        rendered = []
        for kind, value in segments:
            if kind in _EXPRESSION_SEGMENTS:
                result = self.evaluate_expression(value)
                rendered.append("" if result is None else str(result))
            elif kind == "PLACEHOLDER":
                rendered.append(f"?{value}")
            else:
                rendered.append(value)
        return "".join(rendered)


class SimpleExpressionEvaluator(ExpressionEvaluator):
    """Default evaluator for the property-navigation expression language."""

    def evaluate_expression(self, expression: str, binding: ParameterBindingContext) -> Any:
        return _ExpressionInterpreter(expression, binding).evaluate(parse_expression(expression))


class _ExpressionInterpreter:
    def __init__(self, expression: str, binding: ParameterBindingContext):
        self._expression = expression
        self._binding = binding

    def evaluate(self, node: ExpressionNode) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Variable):
            return self._binding.evaluation_context.lookup_variable(node.name)
        if isinstance(node, RootProperty):
            return self._property(self._binding.evaluation_context.root, node.name)
        if isinstance(node, Parameter):
            return self._binding.bind_parameter(node.index)
        if isinstance(node, PropertyAccess):
            return self._property(self.evaluate(node.target), node.name)
        if isinstance(node, IndexAccess):
            return self._index(self.evaluate(node.target), node.key)
        if isinstance(node, Addition):
            return self._add(self.evaluate(node.left), self.evaluate(node.right))
        raise ExpressionEvaluationException(
            f"Unsupported node {type(node).__name__} in expression {self._expression!r}"
        )

    def _property(self, target: Any, name: str) -> Any:
        if target is None:
            raise ExpressionEvaluationException(
                f"Cannot read property '{name}' of null in expression {self._expression!r}"
            )
        if isinstance(target, Mapping):
            return target.get(name)
        value = getattr(target, name, _MISSING)
        if value is _MISSING:
            raise ExpressionEvaluationException(
                f"Property '{name}' not found on {type(target).__name__} in expression {self._expression!r}"
            )
        return value

    def _index(self, target: Any, key: Any) -> Any:
        if isinstance(target, Mapping):
            return target.get(key)
        if isinstance(target, Sequence) and not isinstance(target, str) and isinstance(key, int):
            try:
                return target[key]
            except IndexError as e:
                raise ExpressionEvaluationException(
                    f"Index {key} out of range in expression {self._expression!r}"
                ) from e
        raise ExpressionEvaluationException(
            f"Cannot index {type(target).__name__} with {key!r} in expression {self._expression!r}"
        )

    def _add(self, left: Any, right: Any) -> Any:
        if isinstance(left, str) or isinstance(right, str):
            return f"{'null' if left is None else left}{'null' if right is None else right}"
        try:
            return left + right
        except TypeError as e:
            raise ExpressionEvaluationException(
                f"Cannot add {type(left).__name__} and {type(right).__name__} in expression {self._expression!r}"
            ) from e
