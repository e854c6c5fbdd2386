# tests/memory/test_in_memory_loader.py

import re

import pytest
from bson.regex import Regex

from document_references.base.context import ReferenceContext
from document_references.memory.base import InMemoryReferenceLoader

PUBLISHERS = ReferenceContext(collection="publisher")
BOOKS = ReferenceContext(collection="book")


def ids(documents):
    return [document["_id"] for document in documents]


def test_fetch_one_by_equality(memory_loader, logger):
    document = memory_loader.fetch_one(PUBLISHERS, {"acronym": "ORA"}, logger)
    assert document == {"_id": "p2", "acronym": "ORA", "name": "O'Reilly"}


def test_fetch_one_without_match(memory_loader, logger):
    assert memory_loader.fetch_one(PUBLISHERS, {"acronym": "XXX"}, logger) is None


def test_fetch_many_with_disjunction(memory_loader, logger):
    documents = memory_loader.fetch_many(
        BOOKS, {"$or": [{"isbn": "isbn-3"}, {"isbn": "isbn-1"}]}, logger
    )
    assert ids(documents) == ["b1", "b3"]


def test_fetch_many_returns_copies(memory_loader, logger):
    document = memory_loader.fetch_one(PUBLISHERS, {"_id": "p1"}, logger)
    document["name"] = "changed"
    assert memory_loader.fetch_one(PUBLISHERS, {"_id": "p1"}, logger)["name"] == "dpunkt.verlag"


def test_context_selects_database_and_collection(memory_loader, logger):
    archived = ReferenceContext(database="archive", collection="archived_publisher")
    assert ids(memory_loader.fetch_many(archived, {}, logger)) == ["p9"]
    assert memory_loader.fetch_many(ReferenceContext(collection="archived_publisher"), {}, logger) == []
    assert memory_loader.fetch_many(ReferenceContext(database="archive", collection="publisher"), {}, logger) == []


def test_default_collection_used_without_context_collection(logger):
    loader = InMemoryReferenceLoader(default_collection_name="people")
    loader.insert("people", {"_id": 1, "name": "Ann"})
    assert loader.fetch_one(ReferenceContext(), {"name": "Ann"}, logger)["_id"] == 1


@pytest.mark.parametrize(
    "filter, expected",
    [
        ({"_id": {"$in": ["b1", "b3"]}}, ["b1", "b3"]),
        ({"_id": {"$nin": ["b1", "b3"]}}, ["b2"]),
        ({"isbn": {"$ne": "isbn-2"}}, ["b1", "b3"]),
        ({"isbn": {"$gt": "isbn-1", "$lte": "isbn-3"}}, ["b2", "b3"]),
        ({"isbn": {"$gte": "isbn-2", "$lt": "isbn-3"}}, ["b2"]),
        ({"title": {"$regex": "^S"}}, ["b2"]),
        ({"title": Regex("ir")}, ["b1", "b3"]),
        ({"title": re.compile("^T")}, ["b3"]),
        ({"subtitle": {"$exists": False}}, ["b1", "b2", "b3"]),
        ({"$and": [{"isbn": "isbn-1"}, {"title": "First"}]}, ["b1"]),
        ({"$nor": [{"isbn": "isbn-1"}, {"title": "Third"}]}, ["b2"]),
    ],
)
def test_query_operators(memory_loader, logger, filter, expected):
    assert ids(memory_loader.fetch_many(BOOKS, filter, logger)) == expected


def test_array_fields_match_contained_values(logger):
    loader = InMemoryReferenceLoader()
    loader.insert("tagged", {"_id": 1, "tags": ["a", "b"]})
    loader.insert("tagged", {"_id": 2, "tags": ["c"]})
    assert ids(loader.fetch_many(ReferenceContext(collection="tagged"), {"tags": "b"}, logger)) == [1]


def test_nested_fields(logger):
    loader = InMemoryReferenceLoader()
    loader.insert("c", {"_id": 1, "address": {"city": "Heidelberg"}})
    loader.insert("c", {"_id": 2, "address": {"city": "Sebastopol"}})
    found = loader.fetch_many(ReferenceContext(collection="c"), {"address.city": "Sebastopol"}, logger)
    assert ids(found) == [2]


def test_sort_from_context(memory_loader, logger):
    context = ReferenceContext(collection="book", sort={"isbn": -1})
    assert ids(memory_loader.fetch_many(context, {}, logger)) == ["b3", "b2", "b1"]
    assert memory_loader.fetch_one(context, {}, logger)["_id"] == "b3"


def test_multi_key_sort_places_missing_values_first(logger):
    loader = InMemoryReferenceLoader()
    loader.insert_many(
        "c",
        [
            {"_id": 1, "group": "b", "rank": 2},
            {"_id": 2, "group": "a", "rank": 1},
            {"_id": 3, "group": "b", "rank": 1},
            {"_id": 4, "rank": 9},
        ],
    )
    context = ReferenceContext(collection="c", sort={"group": 1, "rank": 1})
    assert ids(loader.fetch_many(context, {}, logger)) == [4, 2, 3, 1]


def test_unsupported_operator(memory_loader, logger):
    with pytest.raises(ValueError):
        memory_loader.fetch_many(BOOKS, {"isbn": {"$where": "true"}}, logger)
