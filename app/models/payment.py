from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PaymentStatus(str, Enum):
    """Canonical outcome of one payment attempt."""
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class _StoredModel(BaseModel):
    # Stored documents use the camelCase keys the ordering app reads.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PaymentRecord(_StoredModel):
    """payments/{paymentId}"""
    payment_id: str
    order_id: str
    user_id: str
    status: PaymentStatus
    amount: float = 0
    payment_method: str
    created_at: str
    billcode: str | None = None
    bill_code: str | None = None
    transaction_id: str | None = None
    gateway_order_id: str | None = None
    signature: str | None = None
    raw_payload: dict[str, Any] | None = None
    updated_at: str


class PaymentIndexEntry(_StoredModel):
    """payments_by_order/{orderId}/{paymentId}"""
    payment_id: str
    order_id: str
    status: PaymentStatus
    amount: float = 0
    created_at: str
    updated_at: str

    @classmethod
    def for_record(cls, record: PaymentRecord) -> "PaymentIndexEntry":
        return cls(
            payment_id=record.payment_id,
            order_id=record.order_id,
            status=record.status,
            amount=record.amount,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class PaymentDetails(_StoredModel):
    """Confirmation block merged into the order on a final status."""
    transaction_id: str | None = None
    method: str
    amount: float = 0
    confirmed_at: str | None = None
    failed_at: str | None = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
