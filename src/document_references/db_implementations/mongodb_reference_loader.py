# src/document_references/db_implementations/mongodb_reference_loader.py

import logging
from logging import LoggerAdapter
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from document_references.base.context import ReferenceContext
from document_references.base.exceptions import ReferenceLookupException
from document_references.base.interfaces import RawDocument, ReferenceLoader

DB_RECORD_TYPE = Dict[str, Any]


class MongoReferenceLoader(ReferenceLoader):
    """
    Reference loader backed by a synchronous pymongo client.

    The context's database and collection select the target collection,
    falling back to the loader's defaults when they are None.
    """

    def __init__(
        self,
        client: MongoClient,
        database_name: str,
        default_collection_name: Optional[str] = None,
    ):
        """
        Args:
            client: An instance of pymongo.MongoClient.
            database_name: Database used when a context names none.
            default_collection_name: Collection used when a context names none.
        """
        if not isinstance(client, MongoClient):
            raise TypeError("client must be an instance of pymongo.MongoClient")

        self._client = client
        self._database_name = database_name
        self._default_collection_name = default_collection_name
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._logger.info(
            f"Reference loader created (default db: '{database_name}', "
            f"default collection: '{default_collection_name}')."
        )

    def _get_collection(self, context: ReferenceContext) -> Collection:
        database_name = context.database or self._database_name
        collection_name = context.collection or self._default_collection_name
        if not collection_name:
            raise ValueError(
                f"No collection to load references from for context {context!r}."
            )
        return self._client[database_name][collection_name]

    @staticmethod
    def _translate_sort(sort: Optional[Dict[str, Any]]) -> Optional[List[Tuple[str, int]]]:
        if not sort:
            return None
        return [
            (field, DESCENDING if direction in (-1, "desc", "descending") else ASCENDING)
            for field, direction in sort.items()
        ]

    def fetch_one(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> Optional[RawDocument]:
        logger.debug(f"Fetching one reference with filter: {filter}, context: {context!r}")
        try:
            collection = self._get_collection(context)
            record_data: Optional[DB_RECORD_TYPE] = collection.find_one(
                filter, sort=self._translate_sort(context.sort)
            )
        except PyMongoError as e:
            self._handle_db_error(e, f"fetching one reference from {context!r}")

        if record_data is None:
            logger.debug(f"No referenced document matches {filter} in {context!r}.")
        return record_data

    def fetch_many(
        self,
        context: ReferenceContext,
        filter: RawDocument,
        logger: LoggerAdapter,
    ) -> List[RawDocument]:
        logger.debug(f"Fetching references with filter: {filter}, context: {context!r}")
        try:
            collection = self._get_collection(context)
            cursor = collection.find(filter)
            sort = self._translate_sort(context.sort)
            if sort:
                cursor = cursor.sort(sort)
            records = list(cursor)
        except PyMongoError as e:
            self._handle_db_error(e, f"fetching references from {context!r}")

        logger.info(f"Fetched {len(records)} referenced document(s) from {context!r}.")
        return records

    def _handle_db_error(self, error: Exception, context: str = "operation") -> None:
        self._logger.error(
            f"MongoDB error during {context}: {error}", exc_info=True
        )
        raise ReferenceLookupException(
            f"An unexpected MongoDB error occurred during {context}"
        ) from error
