from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from typing import Any

_MISSING = object()


def prepare_for_binding(data: Any) -> Any:
    """
    Recursively convert values bound into a filter template to query-compatible formats.

    Reference values are usually raw BSON values (ObjectId, str, int, dicts), but
    the mapping layer may also hand over domain objects. This function handles:
    - Pydantic BaseModel instances (dumped by alias, so stored field names are used)
    - Python dataclasses
    - Mappings (processing values recursively, keeping key order)
    - Lists, tuples and sets (processing each item)
    - Pydantic URL types (converting to strings)

    BSON types such as ObjectId, DBRef and datetime are returned untouched.

    Args:
        data: The value to convert

    Returns:
        The converted value, ready to be embedded into a filter document
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_binding(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        return prepare_for_binding(data.model_dump(by_alias=True))

    if isinstance(data, Mapping):
        return {k: prepare_for_binding(v) for k, v in data.items()}

    if isinstance(data, list):
        return [prepare_for_binding(item) for item in data]

    if isinstance(data, tuple):
        return tuple(prepare_for_binding(item) for item in data)

    if isinstance(data, (set, frozenset)):
        return [prepare_for_binding(item) for item in data]

    if data.__class__.__module__ == "pydantic.networks":
        return str(data)

    return data


def get_nested_value(source: Any, path: str, default: Any = None) -> Any:
    """
    Get a value from a nested mapping or object using dot notation.

    Mappings are navigated by key, everything else by attribute. A missing
    segment yields ``default``.
    """
    curr = source
    for part in path.split("."):
        if isinstance(curr, Mapping):
            curr = curr.get(part, _MISSING)
        else:
            curr = getattr(curr, part, _MISSING)
        if curr is _MISSING:
            return default
    return curr


def is_json_document(value: str) -> bool:
    """True if the string looks like a JSON object literal."""
    stripped = value.strip()
    return stripped.startswith("{") and stripped.endswith("}")
