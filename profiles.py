"""
Profile store: the "users" collection.

Owns user schema enforcement and email uniqueness. Uniqueness is enforced by
a unique index in MongoDB, so concurrent signups with the same email are
resolved by the server rather than by locking here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import USERS, parse_object_id, to_str_id
from errors import ConflictError, StoreError, ValidationError
from schemas import User, validate_user

logger = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, db: Database):
        self.collection = db[USERS]
        self.ensure_indexes()

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_index([("email", ASCENDING)], unique=True)
        except PyMongoError as e:
            logger.error(f"Failed to create email index: {e}")
            raise StoreError("Could not prepare users collection") from e

    def create_user(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        violations = validate_user(fields)
        if violations:
            raise ValidationError("Invalid user", details=violations)

        doc = User.model_validate(fields).model_dump(exclude_none=True)
        doc["createdAt"] = datetime.now(timezone.utc)
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError(f"A user with email {doc['email']} already exists") from e
        except PyMongoError as e:
            logger.error(f"Error creating user: {e}")
            raise StoreError("Error creating user") from e

        doc["_id"] = result.inserted_id
        logger.info(f"Created user {doc['_id']}")
        return to_str_id(doc)

    def list_users(self) -> List[Dict[str, Any]]:
        """All users, newest first."""
        try:
            cursor = self.collection.find().sort("createdAt", DESCENDING)
            return [to_str_id(u) for u in cursor]
        except PyMongoError as e:
            logger.error(f"Error listing users: {e}")
            raise StoreError("Error getting users") from e

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise StoreError("Error getting user") from e
        return to_str_id(doc) if doc else None

    def delete_user(self, user_id: str) -> bool:
        """Remove the user record only. Orders are handled by the caller."""
        oid = parse_object_id(user_id)
        if oid is None:
            return False
        try:
            result = self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Error deleting user {user_id}: {e}")
            raise StoreError("Error deleting user") from e
        return result.deleted_count == 1
