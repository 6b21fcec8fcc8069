from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

USER_ID_FIELDS = ("userId", "userID", "customerId", "customerID")
BILLCODE_FIELDS = ("billcode", "billCode")


class OrderStatus(str, Enum):
    """Customer-facing order status."""
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    PRINTING = "PRINTING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class AdminStatus(str, Enum):
    """Staff-facing order status shown in the admin view."""
    PENDING = "pending"
    APPROVED = "approved"
    IN_PROGRESS = "in-progress"
    PRINTING = "printing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ADMIN_STATUS: dict[OrderStatus, AdminStatus] = {
    OrderStatus.PENDING_PAYMENT: AdminStatus.PENDING,
    OrderStatus.PAID: AdminStatus.APPROVED,
    OrderStatus.PROCESSING: AdminStatus.IN_PROGRESS,
    OrderStatus.PRINTING: AdminStatus.PRINTING,
    OrderStatus.COMPLETED: AdminStatus.COMPLETED,
    OrderStatus.CANCELLED: AdminStatus.CANCELLED,
    OrderStatus.PAYMENT_FAILED: AdminStatus.PENDING,
}


def first_present(doc: dict[str, Any], keys: tuple[str, ...]) -> Any | None:
    for key in keys:
        value = doc.get(key)
        if value not in (None, ""):
            return value
    return None


class ResolvedOrder(BaseModel):
    """An order the callback was matched to. `data` is empty for stand-ins."""
    id: str
    user_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, order_id: str, doc: dict[str, Any]) -> "ResolvedOrder":
        user_id = first_present(doc, USER_ID_FIELDS)
        return cls(id=order_id, user_id=str(user_id) if user_id is not None else None, data=doc)

    @property
    def has_billcode(self) -> bool:
        return first_present(self.data, BILLCODE_FIELDS) is not None
