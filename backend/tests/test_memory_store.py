import copy

import pytest

from proinvoice.core.exceptions import IndexUnavailableError, TransactionConflictError
from proinvoice.store.base import (
    ASCENDING, DESCENDING, SERVER_TIMESTAMP, index_key, needs_composite_index,
)


def test_server_timestamp_survives_copies():
    assert copy.copy(SERVER_TIMESTAMP) is SERVER_TIMESTAMP
    assert copy.deepcopy({"created_at": SERVER_TIMESTAMP})["created_at"] is SERVER_TIMESTAMP


def test_composite_index_needed_only_for_filter_plus_foreign_order():
    assert needs_composite_index({"user_id": "a"}, [("created_at", DESCENDING)])
    assert not needs_composite_index({}, [("created_at", DESCENDING)])
    assert not needs_composite_index({"user_id": "a"}, None)
    assert not needs_composite_index({"user_id": "a"}, [("user_id", ASCENDING)])
    assert index_key({"user_id": "a"}, [("created_at", DESCENDING)]) == (
        ("user_id", ASCENDING), ("created_at", DESCENDING))


@pytest.mark.asyncio
async def test_server_timestamp_is_resolved_at_commit(store, clock):
    expected = clock.now
    await store.run_transaction(
        lambda txn: txn.set("invoices", "h1", {"user_id": "a", "created_at": SERVER_TIMESTAMP}))
    doc = await store.get("invoices", "h1")
    assert doc["created_at"] == expected
    assert doc["id"] == "h1"


@pytest.mark.asyncio
async def test_stale_read_conflicts_at_commit(store):
    await store.run_transaction(lambda txn: txn.set("counters", "c", {"n": 1}))
    first = await store.begin()
    second = await store.begin()
    await first.get("counters", "c")
    await second.get("counters", "c")
    await first.set("counters", "c", {"n": 2})
    await second.set("counters", "c", {"n": 2})
    await first.commit()
    with pytest.raises(TransactionConflictError):
        await second.commit()
    assert (await store.get("counters", "c"))["n"] == 2


@pytest.mark.asyncio
async def test_ordered_query_requires_registered_index(store):
    for i, owner in enumerate(["a", "b", "a"]):
        await store.run_transaction(
            lambda txn, i=i, owner=owner: txn.set("invoices", f"h{i}", {"user_id": owner, "seq": i}))

    with pytest.raises(IndexUnavailableError):
        await store.find("invoices", {"user_id": "a"}, order_by=[("seq", DESCENDING)])

    await store.ensure_index("invoices", [("user_id", ASCENDING), ("seq", DESCENDING)])
    rows = await store.find("invoices", {"user_id": "a"}, order_by=[("seq", DESCENDING)])
    assert [r["id"] for r in rows] == ["h2", "h0"]

    await store.drop_indexes("invoices")
    unordered = await store.find("invoices", {"user_id": "a"})
    assert {r["id"] for r in unordered} == {"h0", "h2"}


@pytest.mark.asyncio
async def test_update_and_delete_report_missing_documents(store):
    assert await store.update("invoices", "nope", {"x": 1}) is False
    assert await store.delete("invoices", "nope") is False

    await store.run_transaction(lambda txn: txn.set("invoices", "h1", {"x": 1}))
    assert await store.update("invoices", "h1", {"x": 2}) is True
    assert (await store.get("invoices", "h1"))["x"] == 2
    assert await store.delete("invoices", "h1") is True
    assert await store.get("invoices", "h1") is None
