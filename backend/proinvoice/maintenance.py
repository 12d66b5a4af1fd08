"""
Operaciones de mantenimiento sobre el contador y las facturas de un usuario.
Usadas por backend/scripts/manage_invoices.py.
"""
from __future__ import annotations
import logging
from typing import Dict

from proinvoice.repositories.invoice_repository import InvoiceRepository

logger = logging.getLogger(__name__)


async def show_counter(repo: InvoiceRepository) -> Dict[str, object]:
    last = await repo.allocator.last_issued(repo.store)
    return {
        "last_invoice_number": last,
        "next_invoice_number": repo.allocator.format_number(last + 1),
    }


async def seed_counter(repo: InvoiceRepository, value: int) -> Dict[str, int]:
    previous = await repo.allocator.seed(repo.store, value)
    return {"previous": previous, "current": value}


async def purge_owner(repo: InvoiceRepository, owner_id: str, dry_run: bool = False) -> int:
    """Elimina todas las facturas de un usuario vía el repositorio (ítems y luego cabecera)."""
    if not owner_id:
        raise ValueError("owner_id requerido")
    headers = await repo.list_invoices(owner_id)
    logger.info("Encontradas %d facturas para user_id=%s", len(headers), owner_id)
    if dry_run:
        logger.info("[DRY-RUN] No se borrará nada")
        return len(headers)
    for header in headers:
        await repo.delete_invoice(header.id, owner_id)
    return len(headers)
