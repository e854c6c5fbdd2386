# src/document_references/base/resolver.py

import logging
from logging import LoggerAdapter
from collections.abc import Mapping
from typing import Any, List, Optional

from document_references.base.context import ReferenceContext
from document_references.base.converter import EntityConverter
from document_references.base.descriptor import PropertyDescriptor
from document_references.base.interfaces import (DocumentConverter,
                                                 LookupFunction, RawDocument,
                                                 ReferenceLoader)
from document_references.base.lazy import (LazyLoadingProxy,
                                           LazyLoadingProxyFactory)
from document_references.base.reader import ReferenceReader

base_logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Entry point used by the mapping layer to resolve a reference property.

    Chooses the lookup shape from the property's multiplicity and either
    resolves immediately through a :class:`ReferenceReader` or returns a
    :class:`LazyLoadingProxy` for lazy references.
    """

    def __init__(
        self,
        loader: ReferenceLoader,
        reader: Optional[ReferenceReader] = None,
        converter: Optional[DocumentConverter] = None,
    ):
        if loader is None:
            raise ValueError("ReferenceLoader must not be None")
        self._loader = loader
        self._reader = reader or ReferenceReader()
        self._converter = converter or EntityConverter()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def loader(self) -> ReferenceLoader:
        return self._loader

    def resolve(
        self,
        descriptor: PropertyDescriptor,
        source: Any,
        reader: Optional[ReferenceReader] = None,
        converter: Optional[DocumentConverter] = None,
        logger: Optional[LoggerAdapter] = None,
    ) -> Any:
        """
        Resolve the raw reference value ``source`` of ``descriptor``.

        Args:
            descriptor: The reference property.
            source: The raw value stored on the owning document.
            reader: Overrides the resolver's reference reader.
            converter: Overrides the resolver's document converter.
            logger: Logger adapter handed to the loader.

        Returns:
            The resolved value, or a LazyLoadingProxy for lazy references.
        """
        reader = reader or self._reader
        converter = converter or self._converter
        logger = logger or LoggerAdapter(base_logger, {})

        lookup = self._lookup_function_for(descriptor, logger)

        if self.is_lazy_reference(descriptor):
            self._logger.debug(f"Creating lazy loading proxy for '{descriptor.name}'.")
            return self._create_lazy_loading_proxy(descriptor, source, reader, lookup, converter)

        return reader.read_reference(descriptor, source, lookup, converter)

    def resolve_from_document(
        self,
        descriptor: PropertyDescriptor,
        document: Mapping,
        logger: Optional[LoggerAdapter] = None,
    ) -> Any:
        """Resolve the reference stored under the property's field of ``document``."""
        source = document.get(descriptor.field_name)
        if source is None:
            return None
        return self.resolve(descriptor, source, logger=logger)

    def is_lazy_reference(self, descriptor: PropertyDescriptor) -> bool:
        """True if the declared reference (template or DBRef) is lazy."""
        return descriptor.is_lazy

    def _lookup_function_for(self, descriptor: PropertyDescriptor, logger: LoggerAdapter) -> LookupFunction:
        loader = self.loader

        if descriptor.collection_like or descriptor.is_map:
            def fetch_many(context: ReferenceContext, filter: RawDocument) -> List[RawDocument]:
                return loader.fetch_many(context, filter, logger)

            return fetch_many

        def fetch_one(context: ReferenceContext, filter: RawDocument) -> List[RawDocument]:
            target = loader.fetch_one(context, filter, logger)
            return [] if target is None else [target]

        return fetch_one

    def _create_lazy_loading_proxy(
        self,
        descriptor: PropertyDescriptor,
        source: Any,
        reader: ReferenceReader,
        lookup: LookupFunction,
        converter: DocumentConverter,
    ) -> LazyLoadingProxy:
        return LazyLoadingProxyFactory(reader).create_lazy_loading_proxy(
            descriptor, source, lookup, converter
        )
