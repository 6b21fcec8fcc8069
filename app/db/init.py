import certifi
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.base import ORDERS, PAYMENTS, PAYMENTS_BY_ORDER
from app.db.mongo import MongoDocumentStore

log = get_logger(__name__)

# (collection, index keys) for the order resolver lookups and the newest-first by-order listing
INDEXED_FIELDS = [
    (ORDERS, "billcode"),
    (ORDERS, "billCode"),
    (PAYMENTS, "billcode"),
    (PAYMENTS, "billCode"),
    (PAYMENTS_BY_ORDER, [("orderId", 1), ("createdAt", -1)]),
]

_client: AsyncIOMotorClient | None = None


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db() -> MongoDocumentStore | None:
    """Connect once for the whole process. Returns None when no MONGODB_URI is configured."""
    global _client
    settings = get_settings()
    if not settings.mongodb_uri:
        log.warning("db_disabled", msg="MONGODB_URI not set; callbacks will be rejected")
        return None
    kwargs = {"serverSelectionTimeoutMS": settings.mongodb_timeout_ms}
    # Atlas in Docker: tlsCAFile + tlsDisableOCSPEndpointCheck avoid TLSV1_ALERT_INTERNAL_ERROR
    if _use_tls(settings.mongodb_uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    _client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
    database = _client[settings.mongodb_db_name]
    for collection, keys in INDEXED_FIELDS:
        await database[collection].create_index(keys)
    return MongoDocumentStore(database)


def close_db() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
