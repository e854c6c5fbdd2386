import copy
import logging
import re
from logging import LoggerAdapter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson.regex import Regex

from document_references.base.context import ReferenceContext
from document_references.base.interfaces import RawDocument, ReferenceLoader
from document_references.base.utils import get_nested_value

_MISSING = object()


def _get_nested_field_value(document: Dict[str, Any], field: str) -> Any:
    """Get a value from a nested field using dot notation."""
    if "." not in field:
        return document.get(field, _MISSING)
    return get_nested_value(document, field, _MISSING)


class InMemoryReferenceLoader(ReferenceLoader):
    """
    Reference loader over documents held in Python dictionaries.

    Documents are grouped by ``(database, collection)``. Filters support the
    subset of the MongoDB query language reference templates produce.
    """

    def __init__(self, database_name: str = "default", default_collection_name: Optional[str] = None):
        self._database_name = database_name
        self._default_collection_name = default_collection_name
        self._store: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def insert(self, collection: str, document: Dict[str, Any], database: Optional[str] = None) -> None:
        key = (database or self._database_name, collection)
        self._store.setdefault(key, []).append(copy.deepcopy(document))

    def insert_many(
        self, collection: str, documents: Iterable[Dict[str, Any]], database: Optional[str] = None
    ) -> None:
        for document in documents:
            self.insert(collection, document, database)

    def fetch_one(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> Optional[RawDocument]:
        matches = self.fetch_many(context, filter, logger)
        return matches[0] if matches else None

    def fetch_many(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> List[RawDocument]:
        logger.debug(f"Fetching references in memory with filter: {filter}, context: {context!r}")
        key = (
            context.database or self._database_name,
            context.collection or self._default_collection_name,
        )
        matches = [
            copy.deepcopy(document)
            for document in self._store.get(key, [])
            if self._matches_expression(document, filter)
        ]
        return self._sort_documents(matches, context.sort)

    def _matches_expression(self, document: Dict[str, Any], expr: Dict[str, Any]) -> bool:
        for field, condition in expr.items():
            if field == "$or":
                if not any(self._matches_expression(document, sub) for sub in condition):
                    return False
            elif field == "$and":
                if not all(self._matches_expression(document, sub) for sub in condition):
                    return False
            elif field == "$nor":
                if any(self._matches_expression(document, sub) for sub in condition):
                    return False
            else:
                value = _get_nested_field_value(document, field)
                if isinstance(condition, dict) and condition and all(
                    k.startswith("$") for k in condition
                ):
                    if not all(
                        self._check_operator(op, value, operand)
                        for op, operand in condition.items()
                    ):
                        return False
                elif isinstance(condition, (Regex, re.Pattern)):
                    if not self._matches_regex(value, condition):
                        return False
                elif not self._equals(value, condition):
                    return False
        return True

    @staticmethod
    def _matches_regex(document_value: Any, pattern: Any) -> bool:
        if isinstance(pattern, Regex):
            pattern = pattern.try_compile()
        return isinstance(document_value, str) and bool(pattern.search(document_value))

    @staticmethod
    def _equals(document_value: Any, filter_value: Any) -> bool:
        if document_value is _MISSING:
            return filter_value is None
        if isinstance(document_value, list) and not isinstance(filter_value, list):
            return filter_value in document_value
        return document_value == filter_value

    def _check_operator(self, operator: str, document_value: Any, operand: Any) -> bool:
        present = document_value is not _MISSING
        if operator == "$eq":
            return self._equals(document_value, operand)
        elif operator == "$ne":
            return not self._equals(document_value, operand)
        elif operator == "$gt":
            return present and document_value is not None and document_value > operand
        elif operator == "$gte":
            return present and document_value is not None and document_value >= operand
        elif operator == "$lt":
            return present and document_value is not None and document_value < operand
        elif operator == "$lte":
            return present and document_value is not None and document_value <= operand
        elif operator == "$in":
            return any(self._equals(document_value, candidate) for candidate in operand)
        elif operator == "$nin":
            return not any(self._equals(document_value, candidate) for candidate in operand)
        elif operator == "$exists":
            return present == bool(operand)
        elif operator == "$regex":
            return isinstance(document_value, str) and bool(re.search(operand, document_value))
        else:
            raise ValueError(f"Unsupported operator: {operator}")

    def _sort_documents(
        self, documents: List[Dict[str, Any]], sort: Optional[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        if not documents or not sort:
            return documents
        # Stable sorts applied from the least to the most significant key.
        for field, direction in reversed(list(sort.items())):
            documents = sorted(
                documents,
                key=lambda d: self._sort_key(_get_nested_field_value(d, field)),
                reverse=direction in (-1, "desc", "descending"),
            )
        return documents

    @staticmethod
    def _sort_key(value: Any) -> Tuple[bool, Any]:
        if value is _MISSING or value is None:
            return (False, 0)
        return (True, value)
