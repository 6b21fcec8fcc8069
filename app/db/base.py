from abc import ABC, abstractmethod
from typing import Any

Document = dict[str, Any]

ORDERS = "orders"
PAYMENTS = "payments"
PAYMENTS_BY_ORDER = "payments_by_order"
PAYMENTS_UNMATCHED = "payments_unmatched"


class DocumentStore(ABC):
    """Keyed document store: one collection name plus a string id per document."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Return the document or None when it does not exist."""
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Write the document, replacing whatever was stored under doc_id."""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge fields into the document, creating it if missing."""
        ...

    @abstractmethod
    async def find_one(self, collection: str, field: str, value: Any) -> tuple[str, Document] | None:
        """Return (doc_id, document) of the first document whose field equals value."""
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int = 100,
        newest_by: str | None = None,
    ) -> list[tuple[str, Document]]:
        """
        Return up to limit (doc_id, document) pairs whose field equals value.
        With newest_by, order by that field descending before the limit is applied.
        """
        ...


def order_payment_key(order_id: str, payment_id: str) -> str:
    """Id of the payments_by_order/{orderId}/{paymentId} entry."""
    return f"{order_id}/{payment_id}"
