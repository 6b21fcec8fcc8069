from app.models.callback import PaymentData
from app.models.order import AdminStatus, OrderStatus, ResolvedOrder
from app.models.payment import PaymentDetails, PaymentIndexEntry, PaymentRecord, PaymentStatus

__all__ = [
    "PaymentData",
    "AdminStatus",
    "OrderStatus",
    "ResolvedOrder",
    "PaymentDetails",
    "PaymentIndexEntry",
    "PaymentRecord",
    "PaymentStatus",
]
