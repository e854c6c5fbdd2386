# src/document_references/base/descriptor.py

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Optional, Type

from pydantic import BaseModel, ConfigDict, field_validator

from document_references.base.exceptions import ReferenceConfigurationException

DEFAULT_LOOKUP = "{ '_id' : ?#{#target} }"


class DocumentReference(BaseModel):
    """
    Filter template describing how a document reference is looked up.

    ``lookup`` is a query template that may contain positional placeholders
    (``?0``) and embedded expressions (``?#{...}``). ``db``, ``collection`` and
    ``sort`` are optional expression strings; an empty string means the value
    is not configured and a default applies.
    """

    model_config = ConfigDict(frozen=True)

    lookup: str = DEFAULT_LOOKUP
    db: str = ""
    collection: str = ""
    sort: str = ""
    lazy: bool = False

    @field_validator("lookup")
    @classmethod
    def validate_lookup(cls, value: str) -> str:
        if not value or not value.strip():
            raise ReferenceConfigurationException(
                "A document reference requires a non-empty lookup template."
            )
        return value


class DBRefOptions(BaseModel):
    """Options of a legacy identifier (DBRef style) reference."""

    model_config = ConfigDict(frozen=True)

    db: str = ""
    lazy: bool = False


class ReferenceKind(Enum):
    """The shape of a reference, resolved once per property."""

    LEGACY_SINGLE = "legacy_single"
    LEGACY_MULTI = "legacy_multi"
    TEMPLATED_SINGLE = "templated_single"
    TEMPLATED_MULTI = "templated_multi"

    @property
    def templated(self) -> bool:
        return self in (ReferenceKind.TEMPLATED_SINGLE, ReferenceKind.TEMPLATED_MULTI)

    @property
    def multi(self) -> bool:
        return self in (ReferenceKind.LEGACY_MULTI, ReferenceKind.TEMPLATED_MULTI)


@dataclass(frozen=True)
class PropertyDescriptor:
    """
    Read-only metadata of one association property.

    Attributes:
        name: The property name on the domain object.
        target_type: The entity class referenced documents convert into.
        target_collection: The collection configured for ``target_type``.
        collection_like: True if the property holds an ordered sequence of references.
        is_map: True if the property is a mapping of references.
        document_reference: The filter template. ``None`` for a legacy reference.
        db_ref: Options of a legacy reference.
        field_name: The key the raw reference value is stored under. Defaults to ``name``.
    """

    name: str
    target_type: Type[Any]
    target_collection: str
    collection_like: bool = False
    is_map: bool = False
    document_reference: Optional[DocumentReference] = None
    db_ref: Optional[DBRefOptions] = None
    field_name: str = field(default="")

    def __post_init__(self):
        if self.document_reference is not None and self.db_ref is not None:
            raise ReferenceConfigurationException(
                f"Property '{self.name}' cannot be both a document reference and a DBRef."
            )
        if not self.field_name:
            object.__setattr__(self, "field_name", self.name)

    @property
    def is_document_reference(self) -> bool:
        return self.document_reference is not None

    @property
    def is_lazy(self) -> bool:
        if self.document_reference is not None:
            return self.document_reference.lazy
        return self.db_ref is not None and self.db_ref.lazy

    def get_required_document_reference(self) -> DocumentReference:
        if self.document_reference is None:
            raise ReferenceConfigurationException(
                f"Property '{self.name}' is not a document reference; no lookup template available."
            )
        return self.document_reference

    @cached_property
    def reference_kind(self) -> ReferenceKind:
        if self.document_reference is not None:
            return ReferenceKind.TEMPLATED_MULTI if self.collection_like else ReferenceKind.TEMPLATED_SINGLE
        return ReferenceKind.LEGACY_MULTI if self.collection_like else ReferenceKind.LEGACY_SINGLE
