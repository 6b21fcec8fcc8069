"""Gateway callback: resolve the order, record the payment, move the order status.

Reconciliation problems are acknowledged with 200 and a warning so the gateway does not retry;
only infrastructure faults escape as exceptions.
"""

from enum import Enum
from typing import Any, Mapping
from urllib.parse import quote, urlencode

from app.core.config import get_settings
from app.core.exceptions import PaymentOwnerMissingError, StoreUnavailableError
from app.core.logging import bind_payment_context, get_logger
from app.db.base import DocumentStore
from app.models.callback import BILLCODE_KEYS, PaymentData, pick_str, utc_now_iso
from app.models.payment import PaymentDetails, PaymentRecord, PaymentStatus
from app.services.orders import resolve_order, update_order_status
from app.services.payments import record_payment, stash_unmatched
from app.services.status import normalize

log = get_logger(__name__)

REDIRECT_ERROR = "callback_redirect_failed"


class Outcome(str, Enum):
    MISSING_BILLCODE = "missing_billcode"
    UNRESOLVED_NO_ORDER = "unresolved_no_order"
    UNRESOLVED_NO_USER = "unresolved_no_user"
    STATUS_UPDATED = "status_updated"
    SKIPPED = "skipped"


def _payment_details(status: PaymentStatus, record: PaymentRecord) -> dict[str, Any]:
    stamp = utc_now_iso()
    details = PaymentDetails(
        transaction_id=record.transaction_id,
        method=record.payment_method,
        amount=record.amount,
        confirmed_at=stamp if status == PaymentStatus.SUCCESS else None,
        failed_at=stamp if status == PaymentStatus.FAILED else None,
    )
    return details.to_document()


async def _park(store: DocumentStore, data: PaymentData, outcome: Outcome, note: str, warning: str, order_id: str | None = None) -> dict:
    await stash_unmatched(store, data, note=note, order_id=order_id)
    log.info("payment_callback_handled", outcome=outcome.value, order_id=order_id)
    return {"received": True, "saved": False, "warning": warning}


async def handle_callback(store: DocumentStore | None, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Process one gateway callback and return the acknowledgement body."""
    if store is None:
        raise StoreUnavailableError("Database is not available. Set MONGODB_URI.")
    log.info("payment_callback_received", keys=sorted(payload.keys()))

    billcode = pick_str(payload, BILLCODE_KEYS)
    if not billcode:
        log.error("payment_callback_missing_billcode", keys=sorted(payload.keys()))
        log.info("payment_callback_handled", outcome=Outcome.MISSING_BILLCODE.value)
        return {"received": True, "error": "Missing billcode"}
    bind_payment_context(billcode=billcode)

    data = PaymentData.from_payload(payload, billcode, get_settings().default_payment_method)
    status = normalize(data.status)

    order = await resolve_order(store, billcode, data.order_id)
    if order is None:
        return await _park(
            store,
            data,
            Outcome.UNRESOLVED_NO_ORDER,
            note="Order ID not resolved",
            warning="Order ID not resolved. Payment stored in payments_unmatched.",
        )
    bind_payment_context(order_id=order.id)
    if not order.user_id:
        return await _park(
            store,
            data,
            Outcome.UNRESOLVED_NO_USER,
            note="Order found but userId missing",
            warning=f"Order {order.id} found but userId is missing. "
            "Payment stored in payments_unmatched with order reference.",
            order_id=order.id,
        )

    try:
        record = await record_payment(store, data, order.id, order.user_id)
    except PaymentOwnerMissingError as e:
        return await _park(store, data, Outcome.UNRESOLVED_NO_USER, note=e.message, warning=e.message, order_id=order.id)

    if status in (PaymentStatus.SUCCESS, PaymentStatus.FAILED):
        await update_order_status(
            store,
            order.id,
            status,
            {
                "paymentId": record.payment_id,
                "billcode": billcode,
                "paymentDetails": _payment_details(status, record),
            },
        )
        outcome = Outcome.STATUS_UPDATED
    else:
        outcome = Outcome.SKIPPED
    log.info("payment_callback_handled", outcome=outcome.value, payment_id=record.payment_id)
    return {
        "received": True,
        "success": True,
        "orderId": order.id,
        "paymentId": record.payment_id,
        "status": record.status.value,
    }


def build_return_link(
    deep_link: str,
    billcode: str | None,
    status: str | None = None,
    transaction_id: str | None = None,
) -> str:
    """App deep link carrying the browser return parameters; billcode is always present."""
    params = [("billcode", billcode or "")]
    if status:
        params.append(("status", status))
    if transaction_id:
        params.append(("transactionId", transaction_id))
    return f"{deep_link}?{urlencode(params, safe='', quote_via=quote)}"


def build_error_link(deep_link: str) -> str:
    return f"{deep_link}?{urlencode({'error': REDIRECT_ERROR})}"
