# src/document_references/base/reader.py

import logging
from collections.abc import Mapping
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional

from bson.dbref import DBRef

from document_references.base.codec import ParameterBindingDocumentCodec
from document_references.base.context import ReferenceContext
from document_references.base.descriptor import (PropertyDescriptor,
                                                 ReferenceKind)
from document_references.base.exceptions import ExpressionEvaluationException
from document_references.base.expression import (EvaluationContext,
                                                 ParameterBindingContext,
                                                 SimpleExpressionEvaluator,
                                                 value_provider_for)
from document_references.base.interfaces import (DocumentConverter,
                                                 ExpressionEvaluator,
                                                 LookupFunction, RawDocument)
from document_references.base.utils import is_json_document

OR_OPERATOR = "$or"
ID_FIELD = "_id"


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def compare_against_reference_index(
    reference_list: List[RawDocument], document1: RawDocument, document2: RawDocument
) -> int:
    """
    Order two documents by the first ``$or`` branch that tells them apart.

    A document matches a branch when it contains all of the branch's
    key/value pairs. If no branch matches exactly one of the two documents
    the length of ``reference_list`` is returned. That is a weak tie-break:
    with overlapping branches the resulting order is not a strict total
    order and depends on the stability of the sort.
    """
    for branch in reference_list:
        in_first = _contains_all(document1, branch)
        in_second = _contains_all(document2, branch)
        if in_first and not in_second:
            return -1
        if in_second and not in_first:
            return 1
    return len(reference_list)


def _contains_all(document: RawDocument, branch: RawDocument) -> bool:
    return all(key in document and document[key] == value for key, value in branch.items())


class ReferenceReader:
    """
    Reads the value of a reference property.

    Computes the filter and the target context for the raw reference value,
    runs the supplied lookup function, restores the original reference
    order for multi-valued document references and converts the raw
    documents through the supplied converter.
    """

    def __init__(
        self,
        evaluator: Optional[ExpressionEvaluator] = None,
        codec: Optional[ParameterBindingDocumentCodec] = None,
    ):
        self._evaluator = evaluator or SimpleExpressionEvaluator()
        self._codec = codec or ParameterBindingDocumentCodec()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._filter_builders: Dict[ReferenceKind, Callable[[PropertyDescriptor, Any], RawDocument]] = {
            kind: self.compute_filter if kind.templated else self._identifier_filter
            for kind in ReferenceKind
        }
        self._context_builders: Dict[ReferenceKind, Callable[[PropertyDescriptor, Any], ReferenceContext]] = {
            kind: self._templated_context if kind.templated else self._legacy_context
            for kind in ReferenceKind
        }

    def read_reference(
        self,
        descriptor: PropertyDescriptor,
        value: Any,
        lookup: LookupFunction,
        converter: DocumentConverter,
    ) -> Any:
        """
        Resolve ``value`` into a converted object or an ordered list of them.

        Args:
            descriptor: The reference property.
            value: The raw reference value(s) stored on the owning document.
            lookup: Runs ``(context, filter)`` against the datastore.
            converter: Converts one raw document into a domain object.

        Returns:
            A list for collection-like properties, otherwise the first
            converted document or None.
        """
        kind = descriptor.reference_kind

        if descriptor.collection_like and _is_sequence(value) and not value:
            self._logger.debug(f"Empty reference list for '{descriptor.name}', skipping lookup.")
            return []

        filter_document = self._filter_builders[kind](descriptor, value)
        context = self.compute_reference_context(descriptor, value)
        self._logger.debug(
            f"Reading reference '{descriptor.name}' ({kind.value}) with filter: "
            f"{filter_document}, context: {context!r}"
        )

        result = lookup(context, filter_document)

        if kind.multi:
            documents = list(result)
            if kind.templated and _is_sequence(value):
                branches = filter_document[OR_OPERATOR]
                documents = sorted(
                    documents,
                    key=cmp_to_key(
                        lambda d1, d2: compare_against_reference_index(branches, d1, d2)
                    ),
                )
                if len(documents) < len(branches):
                    self._logger.debug(
                        f"Resolved {len(documents)} of {len(branches)} references for '{descriptor.name}'."
                    )
            return [converter(descriptor, document) for document in documents]

        for document in result:
            return converter(descriptor, document)
        return None

    # --- Filter ---

    def compute_filter(self, descriptor: PropertyDescriptor, value: Any) -> RawDocument:
        """
        Decode the lookup template of a document reference.

        A sequence value of a collection-like property decodes the template
        once per entry and combines the results into an ``$or`` whose
        branches keep the order of the entries.

        Raises:
            ReferenceConfigurationException: If the property has no template.
        """
        lookup = descriptor.get_required_document_reference().lookup

        if descriptor.collection_like and _is_sequence(value):
            branches = [
                self._codec.decode(lookup, self.binding_context(descriptor, entry))
                for entry in value
            ]
            return {OR_OPERATOR: branches}

        return self._codec.decode(lookup, self.binding_context(descriptor, value))

    def _identifier_filter(self, descriptor: PropertyDescriptor, value: Any) -> RawDocument:
        if _is_sequence(value):
            return {ID_FIELD: {"$in": [_reference_id(token) for token in value]}}
        return {ID_FIELD: _reference_id(value)}

    # --- Context ---

    def compute_reference_context(self, descriptor: PropertyDescriptor, value: Any) -> ReferenceContext:
        """
        Determine database, collection and sort for a lookup.

        Only the first entry of a sequence value is considered; all entries of
        a multi-valued reference share one context.
        """
        if _is_sequence(value):
            if not value:
                return ReferenceContext(collection=descriptor.target_collection)
            value = value[0]
        return self._context_builders[descriptor.reference_kind](descriptor, value)

    def _legacy_context(self, descriptor: PropertyDescriptor, value: Any) -> ReferenceContext:
        if isinstance(value, DBRef):
            return ReferenceContext.from_dbref(value)
        if isinstance(value, Mapping):
            return ReferenceContext.from_hints(value, descriptor.target_collection)
        database = descriptor.db_ref.db if descriptor.db_ref and descriptor.db_ref.db else None
        return ReferenceContext(database=database, collection=descriptor.target_collection)

    def _templated_context(self, descriptor: PropertyDescriptor, value: Any) -> ReferenceContext:
        reference = descriptor.get_required_document_reference()
        binding = self.binding_context(descriptor, value)

        def default_collection() -> str:
            if isinstance(value, Mapping) and value.get("collection"):
                return value["collection"]
            return descriptor.target_collection

        database = self._parse_value_or_get(reference.db, binding, lambda: None)
        collection = self._parse_value_or_get(reference.collection, binding, default_collection)
        sort = self._parse_value_or_get(reference.sort, binding, lambda: None)

        if database is not None and not isinstance(database, str):
            raise ExpressionEvaluationException(
                f"Database expression {reference.db!r} evaluated to {type(database).__name__}, expected str."
            )
        if not isinstance(collection, str):
            raise ExpressionEvaluationException(
                f"Collection expression {reference.collection!r} evaluated to {type(collection).__name__}, expected str."
            )
        if sort is not None and not isinstance(sort, Mapping):
            raise ExpressionEvaluationException(
                f"Sort expression {reference.sort!r} evaluated to {type(sort).__name__}, expected a document."
            )
        return ReferenceContext(database=database, collection=collection, sort=dict(sort) if sort else None)

    def _parse_value_or_get(
        self, template: str, binding: ParameterBindingContext, default: Callable[[], Any]
    ) -> Any:
        if not template or not template.strip():
            return default()

        if is_json_document(template) or template.lstrip().startswith(("?", ":#{")):
            evaluated = self._codec.decode_value(template, binding)
        else:
            evaluated = binding.evaluate_template(template)

        if evaluated is None or evaluated == "":
            return default()
        return evaluated

    # --- Binding ---

    def binding_context(self, descriptor: PropertyDescriptor, source: Any) -> ParameterBindingContext:
        return ParameterBindingContext(
            value_provider_for(source),
            self._evaluator,
            lambda: self.evaluation_context_for(descriptor, source),
        )

    def evaluation_context_for(self, descriptor: PropertyDescriptor, source: Any) -> EvaluationContext:
        return EvaluationContext(
            root=source,
            variables={"target": source, descriptor.name: source},
        )


def _reference_id(token: Any) -> Any:
    if isinstance(token, DBRef):
        return token.id
    if isinstance(token, Mapping):
        return token.get(ID_FIELD, token.get("id"))
    return token
