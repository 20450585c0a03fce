"""
Database connection helpers for MongoDB.

Configuration comes from the environment (a local .env file is loaded first):
- DATABASE_URL: MongoDB connection string
- DATABASE_NAME: database to use (default: userprofile-system)
"""

import logging
import os
from typing import Any, Dict, Optional

from bson.objectid import ObjectId
from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import CollectionInvalid, PyMongoError

from schemas import ORDER_VALIDATOR, USER_VALIDATOR

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "userprofile-system"

USERS = "users"
ORDERS = "orders"


def get_database_url() -> Optional[str]:
    return os.getenv("DATABASE_URL")


def get_database_name() -> str:
    return os.getenv("DATABASE_NAME") or DEFAULT_DATABASE_NAME


def connect(database_url: Optional[str] = None, database_name: Optional[str] = None) -> Database:
    """Create a client and return the configured database handle.

    The client owns its connection pool and is safe to share across requests.
    """
    url = database_url or get_database_url()
    if not url:
        raise RuntimeError("DATABASE_URL is not set. Check your environment or .env file.")
    client: MongoClient = MongoClient(url, tz_aware=True)
    return client[database_name or get_database_name()]


def ensure_collections(db: Database) -> None:
    """Create the users and orders collections with their schema validators.

    Collections that already exist are left as they are.
    """
    for name, validator in ((USERS, USER_VALIDATOR), (ORDERS, ORDER_VALIDATOR)):
        try:
            db.create_collection(name, validator=validator)
            logger.info(f"Created collection {name} with schema validation")
        except CollectionInvalid:
            logger.debug(f"Collection {name} already exists")


def ping(db: Database) -> bool:
    try:
        db.client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"Database ping failed: {e}")
        return False


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_str_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = dict(doc)
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    if isinstance(d.get("userId"), ObjectId):
        d["userId"] = str(d["userId"])
    return d
