"""
Database Schemas

MongoDB collection schemas for the user profile system, defined as Pydantic
models. These are used to validate incoming documents before they are written.

Collections:
- User -> "users" collection
- Order -> "orders" collection

The same rules are also installed on the collections themselves as
``$jsonSchema`` validators (see USER_VALIDATOR and ORDER_VALIDATOR), so a
document that bypasses the application is still checked by the server.
"""

from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

# BSON integers are signed 64-bit.
INT64_MAX = 2**63 - 1

OrderStatus = Literal["pending", "shipped", "delivered"]

ORDER_STATUSES = get_args(OrderStatus)


class Address(BaseModel):
    model_config = ConfigDict(extra="forbid")

    city: str = Field(..., strict=True, description="City")
    country: str = Field(..., strict=True, description="Country")
    zip: int = Field(..., strict=True, ge=0, le=INT64_MAX, description="Postal code")


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., strict=True, min_length=1, description="Full name")
    email: str = Field(..., strict=True, pattern=EMAIL_PATTERN, description="Email address")
    age: int = Field(..., strict=True, ge=18, le=150, description="Age in years, adults only")
    address: Optional[Address] = Field(None, description="Postal address")


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product: str = Field(..., strict=True, description="Product name")
    price: float = Field(..., strict=True, ge=0, allow_inf_nan=False, description="Unit price")


class OrderItems(BaseModel):
    items: List[OrderItem] = Field(..., min_length=1)


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "orders"

    totalAmount is derived from items on insert and is never taken from input.
    userId and orderDate are added by the ledger when the document is written.
    """
    items: List[OrderItem]
    totalAmount: float
    status: OrderStatus = "pending"


class CreateOrderRequest(BaseModel):
    user_id: str
    items: Any = None


def _violations(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    violations = []
    for err in exc.errors():
        violations.append({
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        })
    return violations


def validate_user(fields: Any) -> List[Dict[str, Any]]:
    """Return the list of schema violations for a user payload (empty if valid)."""
    try:
        User.model_validate(fields)
    except PydanticValidationError as e:
        return _violations(e)
    return []


def validate_items(items: Any) -> List[Dict[str, Any]]:
    """Return the list of schema violations for an order's line items."""
    try:
        OrderItems.model_validate({"items": items})
    except PydanticValidationError as e:
        return _violations(e)
    return []


def compute_total(items: List[Dict[str, Any]]) -> float:
    # Plain double accumulation in input order, no rounding.
    total = 0.0
    for item in items:
        total += float(item["price"])
    return total


USER_VALIDATOR: Dict[str, Any] = {
    "$jsonSchema": {
        "bsonType": "object",
        "title": "User profile schema validation",
        "required": ["name", "email", "age"],
        "properties": {
            "name": {"bsonType": "string", "minLength": 1},
            "email": {"bsonType": "string", "pattern": EMAIL_PATTERN},
            "age": {"bsonType": ["int", "long"], "minimum": 18, "maximum": 150},
            "address": {
                "bsonType": "object",
                "required": ["city", "country", "zip"],
                "properties": {
                    "city": {"bsonType": "string"},
                    "country": {"bsonType": "string"},
                    "zip": {"bsonType": ["int", "long"], "minimum": 0},
                },
            },
            "createdAt": {"bsonType": "date"},
        },
    }
}

ORDER_VALIDATOR: Dict[str, Any] = {
    "$jsonSchema": {
        "bsonType": "object",
        "title": "Order schema validation",
        "required": ["userId", "items", "totalAmount", "status", "orderDate"],
        "properties": {
            "userId": {"bsonType": "objectId"},
            "items": {
                "bsonType": "array",
                "minItems": 1,
                "items": {
                    "bsonType": "object",
                    "required": ["product", "price"],
                    "properties": {
                        "product": {"bsonType": "string"},
                        "price": {"bsonType": "double", "minimum": 0},
                    },
                },
            },
            "totalAmount": {"bsonType": "double"},
            "status": {"enum": list(ORDER_STATUSES)},
            "orderDate": {"bsonType": "date"},
        },
    }
}
