# tests/base/test_descriptor.py

import pytest
from pydantic import ValidationError

from document_references.base.descriptor import (DEFAULT_LOOKUP, DBRefOptions,
                                                 DocumentReference,
                                                 PropertyDescriptor,
                                                 ReferenceKind)
from document_references.base.exceptions import \
    ReferenceConfigurationException


def make(**kwargs):
    kwargs.setdefault("name", "publisher")
    kwargs.setdefault("target_type", dict)
    kwargs.setdefault("target_collection", "publisher")
    return PropertyDescriptor(**kwargs)


@pytest.mark.parametrize(
    "kwargs, kind",
    [
        ({}, ReferenceKind.LEGACY_SINGLE),
        ({"db_ref": DBRefOptions()}, ReferenceKind.LEGACY_SINGLE),
        ({"collection_like": True}, ReferenceKind.LEGACY_MULTI),
        ({"document_reference": DocumentReference()}, ReferenceKind.TEMPLATED_SINGLE),
        ({"document_reference": DocumentReference(), "collection_like": True}, ReferenceKind.TEMPLATED_MULTI),
    ],
)
def test_reference_kind(kwargs, kind):
    descriptor = make(**kwargs)
    assert descriptor.reference_kind is kind
    assert kind.templated == descriptor.is_document_reference
    assert kind.multi == descriptor.collection_like


@pytest.mark.parametrize(
    "kwargs, lazy",
    [
        ({}, False),
        ({"db_ref": DBRefOptions(lazy=True)}, True),
        ({"db_ref": DBRefOptions()}, False),
        ({"document_reference": DocumentReference(lazy=True)}, True),
        ({"document_reference": DocumentReference()}, False),
    ],
)
def test_is_lazy(kwargs, lazy):
    assert make(**kwargs).is_lazy is lazy


def test_field_name_defaults_to_name():
    assert make().field_name == "publisher"
    assert make(field_name="pub_id").field_name == "pub_id"


def test_both_reference_kinds_rejected():
    with pytest.raises(ReferenceConfigurationException):
        make(document_reference=DocumentReference(), db_ref=DBRefOptions())


@pytest.mark.parametrize("lookup", ["", "   "])
def test_blank_lookup_rejected(lookup):
    with pytest.raises(ValidationError):
        DocumentReference(lookup=lookup)


def test_document_reference_defaults():
    reference = DocumentReference()
    assert reference.lookup == DEFAULT_LOOKUP
    assert (reference.db, reference.collection, reference.sort, reference.lazy) == ("", "", "", False)


def test_document_reference_is_frozen():
    reference = DocumentReference()
    with pytest.raises(ValidationError):
        reference.lazy = True


def test_required_document_reference():
    with pytest.raises(ReferenceConfigurationException):
        make().get_required_document_reference()
    reference = DocumentReference()
    assert make(document_reference=reference).get_required_document_reference() is reference
