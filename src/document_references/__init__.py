# src/document_references/__init__.py

"""
Document Reference Resolution Library Initialization.

This package resolves references between documents of a MongoDB-style
document store: plain identifier (DBRef style) references and document
references described by a parameterized lookup template, resolved eagerly
or lazily through a loading proxy.

It initializes a logger with a NullHandler and makes the resolver, reader,
reference metadata, loaders and exceptions available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for the "document_references" logger.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Reference Metadata and Exceptions
# --------------------------------------------------------------------------
from .base.descriptor import (DBRefOptions, DocumentReference,
                              PropertyDescriptor, ReferenceKind)
from .base.context import ReferenceContext
from .base.exceptions import (ExpressionEvaluationException,
                              ReferenceConfigurationException,
                              ReferenceLookupException)

# --------------------------------------------------------------------------
# Resolution Pipeline
# --------------------------------------------------------------------------
from .base.interfaces import ExpressionEvaluator, ReferenceLoader
from .base.expression import ParameterBindingContext, SimpleExpressionEvaluator
from .base.codec import ParameterBindingDocumentCodec
from .base.reader import ReferenceReader, compare_against_reference_index
from .base.resolver import ReferenceResolver
from .base.lazy import LazyLoadingProxy, Resolved, Deferred
from .base.converter import EntityConverter

# --------------------------------------------------------------------------
# Loader Implementations
# --------------------------------------------------------------------------
from .memory.base import InMemoryReferenceLoader
from .db_implementations.mongodb_reference_loader import MongoReferenceLoader

__all__ = [
    # Metadata
    "DocumentReference",
    "DBRefOptions",
    "PropertyDescriptor",
    "ReferenceKind",
    "ReferenceContext",
    # Exceptions
    "ReferenceConfigurationException",
    "ExpressionEvaluationException",
    "ReferenceLookupException",
    # Pipeline
    "ExpressionEvaluator",
    "SimpleExpressionEvaluator",
    "ParameterBindingContext",
    "ParameterBindingDocumentCodec",
    "ReferenceReader",
    "compare_against_reference_index",
    "ReferenceResolver",
    "LazyLoadingProxy",
    "Resolved",
    "Deferred",
    "EntityConverter",
    # Loaders
    "ReferenceLoader",
    "InMemoryReferenceLoader",
    "MongoReferenceLoader",
    # Logging
    "logger",
]

__version__ = "0.1.0"
