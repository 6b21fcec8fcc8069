"""Gateway status codes -> canonical payment status -> order / admin status."""

from typing import Any

from app.models.order import ADMIN_STATUS, AdminStatus, OrderStatus
from app.models.payment import PaymentStatus

GATEWAY_STATUS: dict[str, PaymentStatus] = {
    "1": PaymentStatus.SUCCESS,
    "2": PaymentStatus.PENDING,
    "3": PaymentStatus.FAILED,
    "success": PaymentStatus.SUCCESS,
    "pending": PaymentStatus.PENDING,
    "failed": PaymentStatus.FAILED,
    "failure": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
}

ORDER_STATUS: dict[PaymentStatus, OrderStatus] = {
    PaymentStatus.SUCCESS: OrderStatus.PAID,
    PaymentStatus.PENDING: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.FAILED: OrderStatus.PAYMENT_FAILED,
}


def normalize(raw_status: Any) -> PaymentStatus:
    """Total: anything unrecognised (including None) is pending."""
    if raw_status is None:
        return PaymentStatus.PENDING
    if isinstance(raw_status, PaymentStatus):
        return raw_status
    return GATEWAY_STATUS.get(str(raw_status).strip().lower(), PaymentStatus.PENDING)


def order_status_for(status: PaymentStatus) -> OrderStatus:
    return ORDER_STATUS[status]


def admin_status_for(status: OrderStatus) -> AdminStatus:
    return ADMIN_STATUS[status]
