from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from proinvoice.repositories.invoice_repository import InvoiceRepository
from proinvoice.repositories.sequence_allocator import SequenceAllocator
from proinvoice.store.memory_store import MemoryDocumentStore


class TickingClock:
    """Reloj determinista: cada lectura avanza un segundo."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc),
                 step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store(clock: TickingClock) -> MemoryDocumentStore:
    return MemoryDocumentStore(clock=clock, max_attempts=25, retry_max_wait=0.01)


@pytest.fixture
def allocator() -> SequenceAllocator:
    return SequenceAllocator(
        collection="counters",
        counter_key="invoices",
        prefix="BILL",
        width=3,
        clock=lambda: datetime(2025, 6, 15, tzinfo=timezone.utc),
    )


@pytest_asyncio.fixture
async def repository(store: MemoryDocumentStore, allocator: SequenceAllocator) -> InvoiceRepository:
    repo = InvoiceRepository(store, allocator=allocator,
                             invoices_collection="invoices",
                             items_collection="invoice_items")
    await repo.ensure_indexes()
    return repo


def sample_items() -> List[Dict[str, Any]]:
    return [
        {"description": "Diseño de logo", "quantity": 2, "price": 100},
        {"description": "Tarjetas", "quantity": 1, "price": 50},
    ]


async def create_sample(repo: InvoiceRepository, owner: str = "alice", **kwargs: Any) -> str:
    params: Dict[str, Any] = {
        "customer_name": "ACME",
        "invoice_date": "2025-06-15",
        "items": sample_items(),
        "discount_type": "percentage",
        "discount_value": 10,
    }
    params.update(kwargs)
    return await repo.create_invoice(owner, **params)
