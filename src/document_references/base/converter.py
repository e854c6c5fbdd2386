# src/document_references/base/converter.py

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Set, get_type_hints

from document_references.base.descriptor import PropertyDescriptor
from document_references.base.interfaces import RawDocument


class EntityConverter:
    """
    Converts a raw referenced document into an instance of the property's target type.

    Keeps only fields the target type declares, maps the document's ``_id`` to
    ``db_id_field`` and ``app_id_field``, and makes naive datetimes UTC-aware.
    Works with Pydantic models, dataclasses and annotated plain classes.
    Mapping target types receive the whole document. A target type without
    declared fields is rejected instead of producing an empty instance.
    """

    def __init__(self, app_id_field: str = "id", db_id_field: str = "_id"):
        self._app_id_field = app_id_field
        self._db_id_field = db_id_field
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def __call__(self, descriptor: PropertyDescriptor, document: RawDocument) -> Any:
        return self.convert(descriptor, document)

    def convert(self, descriptor: PropertyDescriptor, document: RawDocument) -> Any:
        if document is None:
            raise ValueError("Cannot convert None document.")

        target_type = descriptor.target_type
        if isinstance(target_type, type) and issubclass(target_type, Mapping):
            return target_type(document)

        entity_fields = self._entity_fields(target_type)
        if not entity_fields:
            raise ValueError(
                f"Cannot determine the fields of {getattr(target_type, '__name__', target_type)!r} "
                f"for reference '{descriptor.name}'"
            )
        init_kwargs: Dict[str, Any] = {}

        db_id_value = document.get("_id")
        if db_id_value is not None:
            if self._db_id_field in entity_fields:
                init_kwargs[self._db_id_field] = db_id_value
            if self._app_id_field != self._db_id_field and self._app_id_field in entity_fields:
                init_kwargs[self._app_id_field] = document.get(self._app_id_field, db_id_value)

        for field_name in entity_fields:
            if field_name in init_kwargs or field_name not in document:
                continue
            value = document[field_name]
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            init_kwargs[field_name] = value

        try:
            return target_type(**init_kwargs)
        except Exception as e:
            self._logger.error(
                f"Failed to instantiate {target_type.__name__} for reference '{descriptor.name}': {e}. "
                f"Attempted kwargs: {list(init_kwargs.keys())!r}",
                exc_info=True,
            )
            raise ValueError(
                f"Failed to convert referenced document into {target_type.__name__}"
            ) from e

    def _entity_fields(self, target_type: type) -> Set[str]:
        if hasattr(target_type, "model_fields"):
            return set(target_type.model_fields.keys())
        try:
            return set(get_type_hints(target_type).keys())
        except (NameError, TypeError):
            fields = set(getattr(target_type, "__annotations__", {}).keys())
            fields.update(getattr(target_type, "__slots__", ()))
            return fields
