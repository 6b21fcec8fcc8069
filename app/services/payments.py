"""Payment records, the payments-by-order index and the unmatched-payment sink."""

import math
import time
import uuid
from typing import Any, Mapping

from app.core.exceptions import PaymentOwnerMissingError, StoreUnavailableError
from app.core.logging import get_logger
from app.db.base import PAYMENTS, PAYMENTS_BY_ORDER, PAYMENTS_UNMATCHED, DocumentStore, order_payment_key
from app.models.callback import PaymentData, utc_now_iso
from app.models.payment import PaymentIndexEntry, PaymentRecord
from app.services.status import normalize

log = get_logger(__name__)


def fallback_id(prefix: str) -> str:
    """Time-ordered id with a random suffix so concurrent fallbacks do not collide."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def parse_amount(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        log.warning("payment_amount_invalid", amount=str(value))
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def derive_payment_id(data: PaymentData) -> str:
    return data.transaction_id or data.payment_id or data.billcode or fallback_id("PAY")


def derive_unmatched_id(data: PaymentData) -> str:
    return data.transaction_id or data.billcode or fallback_id("UNMATCHED")


def drop_none(value: Any) -> Any:
    """Recursively remove None values from dicts (and dicts inside lists)."""
    if isinstance(value, Mapping):
        return {k: drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_none(v) for v in value if v is not None]
    return value


async def record_payment(
    store: DocumentStore | None,
    data: PaymentData,
    order_id: str | None,
    user_id: str | None,
) -> PaymentRecord:
    """
    Write payments/{paymentId} and payments_by_order/{orderId}/{paymentId}.
    Both ids are required; an existing record with the same derived id is overwritten.
    """
    if store is None:
        raise StoreUnavailableError()
    if not order_id:
        raise PaymentOwnerMissingError("Order ID is required to save payment", details={"billcode": data.billcode})
    if not user_id:
        raise PaymentOwnerMissingError(
            "User ID is required to save payment",
            details={"billcode": data.billcode, "order_id": order_id},
        )

    now = utc_now_iso()
    record = PaymentRecord(
        payment_id=derive_payment_id(data),
        order_id=order_id,
        user_id=user_id,
        status=normalize(data.status),
        amount=parse_amount(data.amount),
        payment_method=data.payment_method,
        created_at=data.timestamp or now,
        billcode=data.billcode or None,
        bill_code=data.billcode or None,
        transaction_id=data.transaction_id,
        gateway_order_id=data.order_id,
        signature=data.signature,
        raw_payload=data.raw or None,
        updated_at=now,
    )
    await store.set(PAYMENTS, record.payment_id, record.to_document())
    await store.set(
        PAYMENTS_BY_ORDER,
        order_payment_key(order_id, record.payment_id),
        PaymentIndexEntry.for_record(record).to_document(),
    )
    log.info("payment_stored", payment_id=record.payment_id, order_id=order_id, status=record.status.value)
    return record


async def stash_unmatched(
    store: DocumentStore | None,
    data: PaymentData,
    note: str,
    order_id: str | None = None,
) -> str | None:
    """Park a payload under payments_unmatched/{id} for manual review. Returns None without a store."""
    if store is None:
        log.warning("unmatched_payment_dropped", billcode=data.billcode, reason="store unavailable")
        return None
    payment_id = derive_unmatched_id(data)
    doc = drop_none({**data.model_dump(), "orderId": order_id, "note": note})
    doc["storedAt"] = utc_now_iso()
    await store.set(PAYMENTS_UNMATCHED, payment_id, doc)
    log.warning("unmatched_payment_stored", payment_id=payment_id, order_id=order_id, note=note)
    return payment_id


async def list_order_payments(store: DocumentStore, order_id: str, limit: int = 100) -> list[dict[str, Any]]:
    """Index entries for one order, newest first."""
    hits = await store.find(PAYMENTS_BY_ORDER, "orderId", order_id, limit=limit, newest_by="createdAt")
    return [doc for _, doc in hits]
