# src/document_references/base/interfaces.py

from abc import ABC, abstractmethod
from logging import LoggerAdapter
from typing import (TYPE_CHECKING, Any, Callable, Dict, Iterable, List,
                    Optional)

from document_references.base.context import ReferenceContext
from document_references.base.descriptor import PropertyDescriptor

if TYPE_CHECKING:
    from document_references.base.expression import ParameterBindingContext

# A raw document as returned by the driver.
RawDocument = Dict[str, Any]

# (context, filter) -> raw documents. Must use the given filter and context as-is.
LookupFunction = Callable[[ReferenceContext, RawDocument], Iterable[RawDocument]]

# (property, raw document) -> domain object.
DocumentConverter = Callable[[PropertyDescriptor, RawDocument], Any]


class ReferenceLoader(ABC):
    """
    Executes reference lookups against a datastore.

    Implementations receive an already computed filter and context and only
    run the query. They may block and perform I/O.
    """

    @abstractmethod
    def fetch_one(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> Optional[RawDocument]:
        """
        Load the first document matching the filter.

        Args:
            context: Target database, collection and sort.
            filter: The query document.
            logger: Logger adapter for recording operations.

        Returns:
            The matching raw document, or None if nothing matches.
        """
        pass

    @abstractmethod
    def fetch_many(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> List[RawDocument]:
        """
        Load all documents matching the filter.

        Args:
            context: Target database, collection and sort.
            filter: The query document.
            logger: Logger adapter for recording operations.

        Returns:
            The matching raw documents in datastore (or sort) order.
        """
        pass


class ExpressionEvaluator(ABC):
    """
    Evaluates a single expression against a binding context.

    The expression is the body of an ``?#{...}`` / ``#{...}`` block.
    """

    @abstractmethod
    def evaluate_expression(
        self, expression: str, binding: "ParameterBindingContext"
    ) -> Any:
        """
        Raises:
            ExpressionEvaluationException: If the expression is malformed or
                refers to something that does not exist.
        """
        pass
