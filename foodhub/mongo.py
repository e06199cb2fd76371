"""MongoDB access for foodhub.

This module has one job: handle MongoDB interactions.

Key design choice (important):
- Each restaurant is a single document holding its comments, and each comment
  holds its replies. Writes replace the whole document.
- That means a write is read -> modify in memory -> save. Two handlers doing
  that for the same restaurant at the same time can overwrite each other.
  DESIGN.md records why this is kept.

The store is an object with an explicit lifecycle rather than a module global:
main.py opens it at startup, hands it to the comment service, and closes it
at shutdown.
"""

from __future__ import annotations

from typing import Any

import structlog
from pymongo import MongoClient
from pymongo.collection import Collection

from .config import MONGO_COLLECTION, MONGO_DB, MONGO_URI
from .models import Restaurant

logger = structlog.get_logger()


class RestaurantStore:
    """Read and write Restaurant documents in one collection."""

    def __init__(
        self,
        client: MongoClient,
        db_name: str = MONGO_DB,
        collection_name: str = MONGO_COLLECTION,
    ) -> None:
        self.client = client
        self.collection: Collection = client[db_name][collection_name]

    @classmethod
    def connect(
        cls,
        uri: str = MONGO_URI,
        db_name: str = MONGO_DB,
        collection_name: str = MONGO_COLLECTION,
    ) -> "RestaurantStore":
        """Create a client for `uri` and wrap the configured collection.

        MongoClient connects lazily, so this does not fail when Mongo is down;
        the first query does.
        """
        logger.info("mongo.connect", db=db_name, collection=collection_name)
        return cls(MongoClient(uri), db_name, collection_name)

    def close(self) -> None:
        self.client.close()
        logger.info("mongo.closed")

    def ping(self) -> None:
        """Raise a PyMongoError if the server is unreachable."""
        self.client.admin.command("ping")

    def find(self, restaurant_id: int) -> tuple[Any, Restaurant] | None:
        """Return (document key, Restaurant) for `restaurant_id`, or None.

        The key is what `save` needs to overwrite the same document later.
        If duplicates exist, the first one Mongo returns wins.
        """
        doc = self.collection.find_one({"restaurantId": restaurant_id})
        if doc is None:
            return None
        return doc["_id"], Restaurant.model_validate(doc)

    def insert(self, restaurant: Restaurant) -> Any:
        """Insert a new restaurant document and return its key."""
        result = self.collection.insert_one(restaurant.to_document())
        logger.debug("mongo.inserted", restaurant_id=restaurant.restaurantId)
        return result.inserted_id

    def save(self, key: Any, restaurant: Restaurant) -> None:
        """Overwrite the whole document stored under `key`."""
        self.collection.replace_one({"_id": key}, restaurant.to_document())
        logger.debug("mongo.saved", restaurant_id=restaurant.restaurantId)
