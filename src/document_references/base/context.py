# src/document_references/base/context.py

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson.dbref import DBRef


@dataclass(frozen=True)
class ReferenceContext:
    """
    Where a single reference lookup is executed.

    ``database`` and ``collection`` of ``None`` mean the loader's defaults
    apply. ``sort`` is a sort document (``{"field": 1}``) or ``None``.
    """

    database: Optional[str] = None
    collection: Optional[str] = None
    sort: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dbref(cls, dbref: DBRef) -> "ReferenceContext":
        """Create a context from the hints carried by a DBRef."""
        return cls(database=dbref.database, collection=dbref.collection)

    @classmethod
    def from_hints(
        cls, hints: Mapping, default_collection: Optional[str]
    ) -> "ReferenceContext":
        """Create a context from an embedded reference carrying db/collection keys."""
        database = hints.get("db", hints.get("database"))
        collection = hints.get("collection") or default_collection
        return cls(database=database, collection=collection)

    def __repr__(self) -> str:
        parts = [f"collection={self.collection!r}"]
        if self.database is not None:
            parts.insert(0, f"database={self.database!r}")
        if self.sort:
            parts.append(f"sort={self.sort!r}")
        return f"ReferenceContext({', '.join(parts)})"
