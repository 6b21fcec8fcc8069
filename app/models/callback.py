"""Gateway callback payload: each logical field is read from an ordered list of candidate keys."""

from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel, Field

BILLCODE_KEYS = ("billcode", "billCode", "bill_code")
STATUS_KEYS = ("status", "statuscode", "billpaymentStatus")
AMOUNT_KEYS = ("amount", "billpaymentAmount", "totalAmount")
TRANSACTION_ID_KEYS = ("transaction_id", "billpaymentInvoiceNo", "invoice_no")
PAYMENT_ID_KEYS = ("payment_id", "paymentId")
ORDER_REF_KEYS = ("order_id", "externalRef", "billExternalReferenceNo")
PAYMENT_METHOD_KEYS = ("payment_method", "method")
TIMESTAMP_KEYS = ("timestamp", "billpaymentTime")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def pick(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any | None:
    """First non-empty value among keys; strings are stripped."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        return value
    return None


def pick_str(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    value = pick(payload, keys)
    return str(value) if value is not None else None


class PaymentData(BaseModel):
    billcode: str
    status: str = "pending"
    amount: Any | None = None
    payment_method: str
    timestamp: str
    transaction_id: str | None = None
    payment_id: str | None = None
    order_id: str | None = None
    signature: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], billcode: str, default_method: str) -> "PaymentData":
        return cls(
            billcode=billcode,
            status=pick_str(payload, STATUS_KEYS) or "pending",
            amount=pick(payload, AMOUNT_KEYS),
            payment_method=pick_str(payload, PAYMENT_METHOD_KEYS) or default_method,
            timestamp=pick_str(payload, TIMESTAMP_KEYS) or utc_now_iso(),
            transaction_id=pick_str(payload, TRANSACTION_ID_KEYS),
            payment_id=pick_str(payload, PAYMENT_ID_KEYS),
            order_id=pick_str(payload, ORDER_REF_KEYS),
            signature=pick_str(payload, ("signature",)),
            raw=dict(payload),
        )
