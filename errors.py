"""
Error taxonomy shared by the profile store, the order ledger and the HTTP layer.

Each error knows the status code and the stable ``code`` string it is reported
with, so handlers in main.py never need to inspect driver exceptions.
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code = 500
    code = "service_error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """Malformed or missing fields in a user or order payload."""
    status_code = 422
    code = "validation_error"


class ConflictError(ServiceError):
    """A user with the same email already exists."""
    status_code = 409
    code = "conflict"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class StoreError(ServiceError):
    """The database rejected the operation or could not be reached."""
    status_code = 500
    code = "store_error"


class PartialDeleteError(StoreError):
    """Orders were removed but deleting the user itself failed."""
    code = "partial_delete"

    def __init__(self, message: str, user_id: str, orders_deleted: int):
        super().__init__(message, details=[{"userId": user_id, "ordersDeleted": orders_deleted}])
        self.user_id = user_id
        self.orders_deleted = orders_deleted
