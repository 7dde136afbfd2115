from typing import Any, Dict, Iterator

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from kyc_backend.core.errors import NotFoundError, StoreUnavailable
from kyc_backend.core.logging import get_logger

logger = get_logger("document-store")


def _to_object_id(key: str) -> ObjectId | None:
    try:
        return ObjectId(key)
    except (InvalidId, TypeError):
        return None


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Replaces Mongo's ObjectId `_id` with a plain string `id`."""
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


class DocumentStore:
    """
    Key/collection contract over a MongoDB database.

    Keys are store-assigned ObjectIds exposed as 24-char hex strings. Driver
    failures surface as StoreUnavailable and are never retried here.
    """

    def __init__(self, database: Database):
        self.db = database

    def create(self, collection: str, fields: Dict[str, Any]) -> str:
        """
        Inserts a new document and returns its key.

        Args:
            collection: Target collection name.
            fields: Document fields. The caller's dict is left untouched.

        Returns:
            The new document key.
        """
        doc = dict(fields)
        try:
            result = self.db[collection].insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Insert into '{collection}' failed: {e}", exc_info=True)
            raise StoreUnavailable(f"Could not create document in '{collection}': {e}")
        key = str(result.inserted_id)
        logger.info(f"Created document '{key}' in '{collection}'.")
        return key

    def get(self, collection: str, key: str) -> Dict[str, Any]:
        """Returns the document stored under `key`, or raises NotFoundError."""
        object_id = _to_object_id(key)
        if object_id is None:
            raise NotFoundError("document", key)
        try:
            doc = self.db[collection].find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(f"Lookup of '{key}' in '{collection}' failed: {e}", exc_info=True)
            raise StoreUnavailable(f"Could not read document '{key}' from '{collection}': {e}")
        if doc is None:
            raise NotFoundError("document", key)
        return _serialize(doc)

    def update(self, collection: str, key: str, partial_fields: Dict[str, Any]) -> None:
        """
        Partial merge: only the supplied fields are replaced, everything else on the
        document is left as is. Raises NotFoundError when no document has `key`.
        """
        object_id = _to_object_id(key)
        if object_id is None:
            raise NotFoundError("document", key)
        try:
            result = self.db[collection].update_one({"_id": object_id}, {"$set": dict(partial_fields)})
        except PyMongoError as e:
            logger.error(f"Update of '{key}' in '{collection}' failed: {e}", exc_info=True)
            raise StoreUnavailable(f"Could not update document '{key}' in '{collection}': {e}")
        if result.matched_count == 0:
            raise NotFoundError("document", key)
        logger.info(f"Updated fields {sorted(partial_fields)} on '{key}' in '{collection}'.")

    def list_all(self, collection: str) -> Iterator[Dict[str, Any]]:
        """
        Lazily yields every document of the collection. The generator is one-shot and
        reflects whatever the cursor sees while it is being consumed.
        """
        try:
            for doc in self.db[collection].find({}):
                yield _serialize(doc)
        except PyMongoError as e:
            logger.error(f"Listing '{collection}' failed: {e}", exc_info=True)
            raise StoreUnavailable(f"Could not list documents in '{collection}': {e}")
