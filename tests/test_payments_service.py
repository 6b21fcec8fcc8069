"""Payment recorder and unmatched sink."""

import pytest

from app.core.exceptions import PaymentOwnerMissingError, StoreUnavailableError
from app.models.callback import PaymentData
from app.services import payments as payments_service

pytestmark = pytest.mark.asyncio


def make_data(**overrides) -> PaymentData:
    fields = {
        "billcode": "BC1",
        "status": "1",
        "amount": "50.00",
        "payment_method": "toyyibpay",
        "timestamp": "2024-05-01T10:00:00+00:00",
    }
    fields.update(overrides)
    return PaymentData(**fields)


async def test_record_payment_writes_record_and_index(store):
    data = make_data(transaction_id="TX1", order_id="EXT-1", signature="sig", raw={"billcode": "BC1"})
    record = await payments_service.record_payment(store, data, "ORD1", "u1")

    assert record.payment_id == "TX1"
    stored = store.collections["payments"]["TX1"]
    assert stored["paymentId"] == "TX1"
    assert stored["orderId"] == "ORD1"
    assert stored["userId"] == "u1"
    assert stored["status"] == "success"
    assert stored["amount"] == 50.0
    assert stored["paymentMethod"] == "toyyibpay"
    assert stored["billcode"] == "BC1"
    assert stored["billCode"] == "BC1"
    assert stored["transactionId"] == "TX1"
    assert stored["gatewayOrderId"] == "EXT-1"
    assert stored["signature"] == "sig"
    assert stored["rawPayload"] == {"billcode": "BC1"}
    assert stored["createdAt"] == "2024-05-01T10:00:00+00:00"

    entry = store.collections["payments_by_order"]["ORD1/TX1"]
    assert entry["paymentId"] == "TX1"
    assert entry["orderId"] == "ORD1"
    assert entry["status"] == "success"
    assert entry["amount"] == 50.0
    assert entry["updatedAt"] == stored["updatedAt"]


async def test_record_payment_is_last_write_wins(store):
    await payments_service.record_payment(store, make_data(transaction_id="TX1", amount=10), "ORD1", "u1")
    await payments_service.record_payment(store, make_data(transaction_id="TX1", amount=20, status="3"), "ORD1", "u1")

    assert list(store.collections["payments"]) == ["TX1"]
    assert store.collections["payments"]["TX1"]["amount"] == 20.0
    assert store.collections["payments"]["TX1"]["status"] == "failed"
    assert list(store.collections["payments_by_order"]) == ["ORD1/TX1"]
    assert store.collections["payments_by_order"]["ORD1/TX1"]["status"] == "failed"


@pytest.mark.parametrize("order_id, user_id", [(None, "u1"), ("ORD1", None), ("", "u1"), ("ORD1", "")])
async def test_record_payment_requires_owner(store, order_id, user_id):
    with pytest.raises(PaymentOwnerMissingError):
        await payments_service.record_payment(store, make_data(), order_id, user_id)
    assert store.writes == []


async def test_record_payment_without_store():
    with pytest.raises(StoreUnavailableError):
        await payments_service.record_payment(None, make_data(), "ORD1", "u1")


async def test_payment_id_priority():
    assert payments_service.derive_payment_id(make_data(transaction_id="TX", payment_id="PID")) == "TX"
    assert payments_service.derive_payment_id(make_data(payment_id="PID")) == "PID"
    assert payments_service.derive_payment_id(make_data()) == "BC1"
    fallback = payments_service.derive_payment_id(make_data(billcode=""))
    assert fallback.startswith("PAY-")


async def test_fallback_ids_do_not_collide():
    ids = {payments_service.fallback_id("PAY") for _ in range(200)}
    assert len(ids) == 200


@pytest.mark.parametrize("raw, expected", [(None, 0.0), ("", 0.0), ("12.50", 12.5), (7, 7.0), ("abc", 0.0), ("nan", 0.0)])
async def test_parse_amount(raw, expected):
    assert payments_service.parse_amount(raw) == expected


async def test_stash_unmatched_drops_none_values(store):
    data = make_data(transaction_id="TX9", signature=None, raw={"billcode": "BC1", "extra": None, "nested": {"a": None, "b": 1}})
    payment_id = await payments_service.stash_unmatched(store, data, note="Order ID not resolved")

    assert payment_id == "TX9"
    doc = store.collections["payments_unmatched"]["TX9"]
    assert doc["note"] == "Order ID not resolved"
    assert doc["billcode"] == "BC1"
    assert "storedAt" in doc
    assert "orderId" not in doc
    assert "signature" not in doc
    assert "order_id" not in doc
    assert doc["raw"] == {"billcode": "BC1", "nested": {"b": 1}}

    def has_none(value):
        if isinstance(value, dict):
            return any(v is None or has_none(v) for v in value.values())
        return False

    assert not has_none(doc)


async def test_stash_unmatched_keeps_order_reference(store):
    payment_id = await payments_service.stash_unmatched(store, make_data(), note="Order found but userId missing", order_id="ORD5")
    assert payment_id == "BC1"
    assert store.collections["payments_unmatched"]["BC1"]["orderId"] == "ORD5"


async def test_stash_unmatched_fallback_id(store):
    payment_id = await payments_service.stash_unmatched(store, make_data(billcode=""), note="x")
    assert payment_id.startswith("UNMATCHED-")


async def test_stash_unmatched_without_store():
    assert await payments_service.stash_unmatched(None, make_data(), note="x") is None


async def test_list_order_payments_newest_first(store):
    await payments_service.record_payment(store, make_data(transaction_id="A", timestamp="2024-05-01T10:00:00+00:00"), "ORD1", "u1")
    await payments_service.record_payment(store, make_data(transaction_id="B", timestamp="2024-05-02T10:00:00+00:00"), "ORD1", "u1")
    await payments_service.record_payment(store, make_data(transaction_id="C"), "ORD2", "u1")

    entries = await payments_service.list_order_payments(store, "ORD1")
    assert [e["paymentId"] for e in entries] == ["B", "A"]


async def test_list_order_payments_limit_returns_newest(store):
    for tx, day in (("A", "01"), ("C", "03"), ("B", "02")):
        await payments_service.record_payment(
            store, make_data(transaction_id=tx, timestamp=f"2024-05-{day}T10:00:00+00:00"), "ORD1", "u1"
        )

    entries = await payments_service.list_order_payments(store, "ORD1", limit=1)
    assert [e["paymentId"] for e in entries] == ["C"]


async def test_payment_id_read_from_payload():
    data = PaymentData.from_payload({"payment_id": "PID-1", "billcode": "BC1"}, "BC1", "toyyibpay")
    assert data.payment_id == "PID-1"
    assert payments_service.derive_payment_id(data) == "PID-1"
