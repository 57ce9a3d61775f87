"""
MongoDB connection and document helpers.

The connection is configured from DATABASE_URL and DATABASE_NAME. When either is
missing `db` stays None and routes report the database as not configured.
"""

import os
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

load_dotenv()

_client = None
db: Optional[Database] = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


def get_db() -> Database:
    if db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value) -> Optional[ObjectId]:
    """Return an ObjectId for `value`, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def create_document(collection_name: str, data: Union[BaseModel, dict], database: Optional[Database] = None) -> str:
    """Insert a document stamped with createdAt/updatedAt and return its id."""
    target = database if database is not None else get_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = data.copy()
    stamp = now_utc()
    data_dict["createdAt"] = stamp
    data_dict["updatedAt"] = stamp
    result = target[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None,
                  database: Optional[Database] = None) -> list:
    target = database if database is not None else get_db()
    return list(target[collection_name].find(filter_dict or {}))


def doc_to_dict(doc):
    """Make a Mongo document JSON friendly: ObjectIds and datetimes become strings, _id becomes id."""
    if isinstance(doc, list):
        return [doc_to_dict(v) for v in doc]
    if not isinstance(doc, dict):
        if isinstance(doc, ObjectId):
            return str(doc)
        if isinstance(doc, datetime):
            return doc.isoformat()
        return doc
    out = {k: doc_to_dict(v) for k, v in doc.items()}
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out
