from datetime import datetime, timezone

import pytest

from conftest import create_sample
from proinvoice.core.exceptions import IndexUnavailableError, StoreUnavailableError
from proinvoice.repositories.invoice_repository import created_at_sort_key
from proinvoice.store.memory_store import MemoryDocumentStore


async def _put_header(store, doc_id, owner, created_at):
    await store.run_transaction(lambda txn: txn.set("invoices", doc_id, {
        "invoice_number": doc_id.upper(),
        "invoice_date": "2025-01-01",
        "customer_name": "ACME",
        "currency_symbol": "₹",
        "user_id": owner,
        "created_at": created_at,
    }))


@pytest.mark.asyncio
async def test_list_newest_first_only_own(repository):
    first = await create_sample(repository, owner="alice")
    await create_sample(repository, owner="bob")
    third = await create_sample(repository, owner="alice")

    headers = await repository.list_invoices("alice")
    assert [h.id for h in headers] == [third, first]
    assert all(h.user_id == "alice" for h in headers)


@pytest.mark.asyncio
async def test_list_for_owner_without_invoices(repository):
    assert await repository.list_invoices("nobody") == []


@pytest.mark.asyncio
async def test_list_degrades_when_index_is_missing(repository, store):
    ids = [await create_sample(repository) for _ in range(3)]
    await store.drop_indexes("invoices")

    headers = await repository.list_invoices("alice")
    assert [h.id for h in headers] == list(reversed(ids))


@pytest.mark.asyncio
async def test_degraded_list_puts_missing_timestamps_last(repository, store):
    await store.drop_indexes("invoices")
    await _put_header(store, "old", "alice", datetime(2024, 1, 1, tzinfo=timezone.utc))
    await _put_header(store, "iso", "alice", "2024-06-01T00:00:00+00:00")
    await _put_header(store, "none", "alice", None)
    await _put_header(store, "new", "alice", datetime(2025, 1, 1, tzinfo=timezone.utc))

    headers = await repository.list_invoices("alice")
    assert [h.id for h in headers] == ["new", "iso", "old", "none"]


@pytest.mark.asyncio
async def test_degraded_list_accepts_legacy_timestamp_shapes(repository, store):
    await store.drop_indexes("invoices")
    await _put_header(store, "dict", "alice", {"seconds": 1735862400, "nanoseconds": 0})
    await _put_header(store, "millis", "alice", 1735776000000)
    await _put_header(store, "text", "alice", "no es fecha")
    await _put_header(store, "native", "alice", datetime(2025, 1, 1, tzinfo=timezone.utc))

    headers = await repository.list_invoices("alice")

    assert [h.id for h in headers] == ["dict", "millis", "native", "text"]
    assert headers[0].created_at == datetime(2025, 1, 3, tzinfo=timezone.utc)
    assert headers[1].created_at == datetime(2025, 1, 2, tzinfo=timezone.utc)
    assert headers[3].created_at is None


@pytest.mark.asyncio
async def test_details_of_header_with_dict_timestamp(repository, store):
    await _put_header(store, "dict", "alice", {"seconds": 1735862400, "nanoseconds": 0})
    details = await repository.get_invoice_details("dict", caller_id="alice")
    assert details.created_at == datetime(2025, 1, 3, tzinfo=timezone.utc)
    assert details.items == []


@pytest.mark.asyncio
async def test_failed_fallback_surfaces_index_error(repository, store, monkeypatch):
    await create_sample(repository)
    await store.drop_indexes("invoices")
    original_find = MemoryDocumentStore.find

    async def _fallback_breaks(self, collection, filters, order_by=None):
        if order_by is None and collection == "invoices":
            raise StoreUnavailableError("caído")
        return await original_find(self, collection, filters, order_by)

    monkeypatch.setattr(MemoryDocumentStore, "find", _fallback_breaks)
    with pytest.raises(IndexUnavailableError):
        await repository.list_invoices("alice")


def test_sort_key_accepts_mixed_timestamp_shapes():
    values = [
        {"created_at": datetime(2025, 1, 1, tzinfo=timezone.utc)},
        {"created_at": datetime(2025, 1, 2)},  # sin zona: UTC
        {"created_at": 1735776000000},  # ms
        {"created_at": {"seconds": 1735862400, "nanoseconds": 0}},
        {"created_at": "2024-12-31"},
        {"created_at": "no es fecha"},
        {},
    ]
    keys = [created_at_sort_key(v) for v in values]
    assert keys[0] == 1735689600
    assert keys[1] == 1735776000
    assert keys[2] == 1735776000
    assert keys[3] == 1735862400
    assert keys[4] == 1735603200
    assert keys[5] == float("-inf")
    assert keys[6] == float("-inf")
