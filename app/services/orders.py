"""Order lookup for gateway callbacks and order status updates."""

from typing import Any

from app.core.logging import get_logger
from app.db.base import ORDERS, PAYMENTS, DocumentStore
from app.models.callback import utc_now_iso
from app.models.order import BILLCODE_FIELDS, OrderStatus, ResolvedOrder
from app.models.payment import PaymentStatus
from app.services.status import admin_status_for, order_status_for

log = get_logger(__name__)

# A gateway-side reference is only trusted as our order id if it looks like one.
ORDER_ID_PREFIX = "ORD"
ORDER_ID_MIN_LENGTH = 10


def looks_like_order_id(ref: str | None) -> bool:
    if not ref:
        return False
    return ref.startswith(ORDER_ID_PREFIX) or len(ref) > ORDER_ID_MIN_LENGTH


async def _find_by_billcode(store: DocumentStore, collection: str, billcode: str) -> tuple[str, dict] | None:
    for field in BILLCODE_FIELDS:
        hit = await store.find_one(collection, field, billcode)
        if hit is not None:
            return hit
    return None


async def find_order_by_billcode(store: DocumentStore, billcode: str) -> ResolvedOrder | None:
    """Orders keyed by billcode, then by the legacy billCode spelling."""
    if not billcode:
        return None
    hit = await _find_by_billcode(store, ORDERS, billcode)
    if hit is None:
        return None
    order_id, doc = hit
    return ResolvedOrder.from_document(order_id, doc)


async def find_order_from_payments(store: DocumentStore, billcode: str) -> ResolvedOrder | None:
    """
    Follow a previous payment with the same billcode back to its order.
    If the order document is gone, return a stand-in carrying the ids the payment recorded.
    """
    if not billcode:
        return None
    hit = await _find_by_billcode(store, PAYMENTS, billcode)
    if hit is None:
        return None
    payment_id, payment = hit
    order_id = payment.get("orderId")
    if not order_id:
        return None
    doc = await store.get(ORDERS, order_id)
    if doc is None:
        log.warning("order_missing_for_payment", payment_id=payment_id, order_id=order_id)
        return ResolvedOrder(id=order_id, user_id=payment.get("userId") or None)
    return ResolvedOrder.from_document(order_id, doc)


async def find_order_by_reference(store: DocumentStore, order_ref: str, billcode: str | None = None) -> ResolvedOrder | None:
    """
    Last resort: accept the gateway's external reference as an order id.
    The order is fetched for its user id and gets the billcode backfilled if it has none.
    """
    ref = order_ref.strip()
    if not looks_like_order_id(ref):
        log.info("order_reference_rejected", order_ref=ref)
        return None
    log.info("order_reference_accepted", order_id=ref)
    try:
        doc = await store.get(ORDERS, ref)
        if doc is None:
            log.warning("order_reference_not_found", order_id=ref)
            return ResolvedOrder(id=ref)
        order = ResolvedOrder.from_document(ref, doc)
        if billcode and not order.has_billcode:
            await store.update(ORDERS, ref, {"billcode": billcode, "billCode": billcode})
            log.info("order_billcode_backfilled", order_id=ref, billcode=billcode)
        return order
    except Exception:
        log.exception("order_reference_fetch_failed", order_id=ref)
        return ResolvedOrder(id=ref)


async def resolve_order(
    store: DocumentStore | None,
    billcode: str | None,
    order_ref: str | None = None,
) -> ResolvedOrder | None:
    """Billcode on orders, then billcode on past payments, then the external order reference."""
    if store is None:
        return None
    order = None
    if billcode:
        order = await find_order_by_billcode(store, billcode)
        if order is None:
            log.warning("order_not_found_by_billcode", billcode=billcode)
            order = await find_order_from_payments(store, billcode)
    if order is None and order_ref:
        order = await find_order_by_reference(store, order_ref, billcode)
    return order


async def update_order_status(
    store: DocumentStore | None,
    order_id: str | None,
    status: PaymentStatus | OrderStatus,
    extra: dict[str, Any] | None = None,
) -> None:
    """Set status and adminStatus on the order, merging extra fields. No-op without store or order id."""
    if store is None or not order_id:
        return
    order_status = order_status_for(status) if isinstance(status, PaymentStatus) else status
    admin_status = admin_status_for(order_status)
    await store.update(
        ORDERS,
        order_id,
        {
            "status": order_status.value,
            "adminStatus": admin_status.value,
            "updatedAt": utc_now_iso(),
            **(extra or {}),
        },
    )
    log.info("order_status_updated", order_id=order_id, status=order_status.value, admin_status=admin_status.value)
