"""
MongoDB connection and document helpers.

The connection is configured from the environment (a ``.env`` file is loaded
first):
- DATABASE_URL  -> MongoDB connection string
- DATABASE_NAME -> database holding the catalog collections

When either is missing ``db`` stays ``None`` so the app can still boot and
report the problem from ``/test``.
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def to_object_id(id_str: Union[str, ObjectId, None]) -> Optional[ObjectId]:
    """Return an ObjectId for ``id_str`` or None when it is not a valid id."""
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def _resolve(database: Optional[Database]) -> Database:
    target = database if database is not None else db
    if target is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME")
    return target


def create_document(collection_name: str, data: Dict[str, Any], database: Optional[Database] = None) -> str:
    """Insert a document with timestamps and return its id as a string."""
    target = _resolve(database)
    doc = dict(data)
    now = datetime.utcnow()
    doc["created_at"] = now
    doc["updated_at"] = now
    result = target[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    database: Optional[Database] = None,
) -> List[Dict[str, Any]]:
    return list(_resolve(database)[collection_name].find(filter_dict or {}))
