"""
Sesiones invitado: cada invitado trabaja sobre un almacén en memoria propio,
sin tocar la base compartida ni el contador global.
"""
from __future__ import annotations
import logging
from collections import OrderedDict
from typing import Optional

from proinvoice.config.settings import settings
from proinvoice.repositories.invoice_repository import InvoiceRepository
from proinvoice.store.memory_store import MemoryDocumentStore

logger = logging.getLogger(__name__)


class GuestSessionRegistry:
    def __init__(self, limit: Optional[int] = None) -> None:
        self.limit = limit or settings.GUEST_SESSION_LIMIT
        self._sessions: "OrderedDict[str, InvoiceRepository]" = OrderedDict()

    async def repository_for(self, guest_id: str) -> InvoiceRepository:
        repo = self._sessions.get(guest_id)
        if repo is not None:
            self._sessions.move_to_end(guest_id)
            return repo
        repo = InvoiceRepository(MemoryDocumentStore())
        await repo.ensure_indexes()
        self._sessions[guest_id] = repo
        while len(self._sessions) > self.limit:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Sesión invitado %s descartada por límite", evicted)
        return repo

    def discard(self, guest_id: str) -> bool:
        return self._sessions.pop(guest_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)
