"""
Database helpers

Opens the MongoDB connection described by the settings and exposes small
helpers shared by the routers and services. Collection names are the
lowercase singular of the schema name ("user", "product", "order", ...).
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

from config import settings

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db = None

if settings.DATABASE_URL:
    client = MongoClient(settings.DATABASE_URL)
    db = client[settings.DATABASE_NAME]


def get_db():
    """FastAPI dependency returning the active database handle."""
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def create_document(database, collection_name: str, data: Union[BaseModel, Dict[str, Any]], session=None) -> Dict[str, Any]:
    """Insert a document with created/updated timestamps and return it with its _id."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    now = datetime.utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    inserted = database[collection_name].insert_one(doc, session=session)
    doc["_id"] = inserted.inserted_id
    return doc


def get_documents(
    database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    skip: int = 0,
    sort: Optional[List[tuple]] = None,
) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def next_sequence(database, name: str) -> int:
    """Atomically increment and return the named counter."""
    counter = database["counter"].find_one_and_update(
        {"_id": name},
        {"$inc": {"sequence_value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(counter["sequence_value"])


def peek_sequence(database, name: str) -> int:
    """Value the next call to next_sequence would return, without consuming it."""
    counter = database["counter"].find_one({"_id": name})
    return int(counter["sequence_value"]) + 1 if counter else 1


def run_in_transaction(database, callback: Callable[[Any], Any]):
    """
    Run callback(session) as a single unit.

    With MONGO_TRANSACTIONS enabled the callback runs inside a multi-document
    transaction; otherwise it receives session=None and is responsible for
    its own compensation.
    """
    if not settings.MONGO_TRANSACTIONS:
        return callback(None)
    with database.client.start_session() as session:
        return session.with_transaction(callback)


def ensure_indexes(database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["product"].create_index([("product_id", ASCENDING)], unique=True)
    database["order"].create_index([("order_id", ASCENDING)], unique=True)
    database["order"].create_index([("user_id", ASCENDING)])
    database["cart"].create_index([("user_id", ASCENDING)], unique=True)
    database["wishlist"].create_index([("user_id", ASCENDING)], unique=True)
    database["review"].create_index([("product_id", ASCENDING), ("user_id", ASCENDING)], unique=True)
    logger.info("Indexes ensured")
