"""
Order ledger: the "orders" collection.

Orders reference users by id. The reference is checked through the profile
store when an order is written; MongoDB itself does not enforce it.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import ORDERS, parse_object_id, to_str_id
from errors import NotFoundError, PartialDeleteError, StoreError, ValidationError
from profiles import ProfileStore
from schemas import Order, OrderItems, compute_total, validate_items

logger = logging.getLogger(__name__)


class CascadeResult(BaseModel):
    userId: str
    ordersDeleted: int
    userDeleted: bool


class OrderLedger:
    def __init__(self, db: Database, profiles: ProfileStore):
        self.collection = db[ORDERS]
        self.profiles = profiles
        self.ensure_indexes()

    def ensure_indexes(self) -> None:
        try:
            self.collection.create_index([("userId", ASCENDING)])
        except PyMongoError as e:
            logger.error(f"Failed to create userId index: {e}")
            raise StoreError("Could not prepare orders collection") from e

    def create_order(self, user_id: str, items: Any) -> Dict[str, Any]:
        user = self.profiles.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")

        violations = validate_items(items)
        if violations:
            raise ValidationError("Invalid order items", details=violations)

        line_items = [item.model_dump() for item in OrderItems.model_validate({"items": items}).items]
        total = compute_total(line_items)
        if not math.isfinite(total):
            raise ValidationError(
                "Invalid order items",
                details=[{"field": "items", "message": "Order total is too large"}],
            )

        doc = {"userId": parse_object_id(user["id"])}
        doc.update(Order(items=line_items, totalAmount=total).model_dump())
        doc["orderDate"] = datetime.now(timezone.utc)
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Error creating order for user {user_id}: {e}")
            raise StoreError("Error creating order") from e

        doc["_id"] = result.inserted_id
        logger.info(f"Created order {doc['_id']} for user {user_id} totalling {doc['totalAmount']}")
        return to_str_id(doc)

    def list_orders_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Orders for a user, newest first. Unknown users simply have none."""
        oid = parse_object_id(user_id)
        if oid is None:
            return []
        try:
            cursor = self.collection.find({"userId": oid}).sort("orderDate", DESCENDING)
            return [to_str_id(o) for o in cursor]
        except PyMongoError as e:
            logger.error(f"Error listing orders for user {user_id}: {e}")
            raise StoreError("Error getting orders") from e

    def delete_orders_for_user(self, user_id: str) -> int:
        oid = parse_object_id(user_id)
        if oid is None:
            return 0
        try:
            result = self.collection.delete_many({"userId": oid})
        except PyMongoError as e:
            logger.error(f"Error deleting orders for user {user_id}: {e}")
            raise StoreError("Error deleting orders") from e
        return result.deleted_count


def delete_user_with_orders(profiles: ProfileStore, ledger: OrderLedger, user_id: str) -> CascadeResult:
    """Delete a user's orders, then the user.

    The two steps are not atomic. If the orders go but the user delete fails,
    PartialDeleteError is raised so the caller sees the half-done state.
    """
    orders_deleted = ledger.delete_orders_for_user(user_id)
    try:
        user_deleted = profiles.delete_user(user_id)
    except StoreError as e:
        logger.error(f"Deleted {orders_deleted} orders but user {user_id} remains")
        raise PartialDeleteError(
            "Orders were deleted but the user could not be removed",
            user_id=user_id,
            orders_deleted=orders_deleted,
        ) from e

    logger.info(f"Deleted user {user_id} (found={user_deleted}) with {orders_deleted} orders")
    return CascadeResult(userId=user_id, ordersDeleted=orders_deleted, userDeleted=user_deleted)
