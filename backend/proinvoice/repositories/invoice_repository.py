from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from proinvoice.config.settings import settings
from proinvoice.core.exceptions import (
    DuplicateInvoiceNumberError, IndexUnavailableError, InvoiceNotFoundError,
    ProInvoiceError, UnauthorizedInvoiceAccessError, ValidationError,
)
from proinvoice.models.invoice import (
    DiscountType, InvoiceDetails, InvoiceHeader, InvoiceLineItem, coerce_number,
    normalize_invoice_lines,
)
from proinvoice.repositories.sequence_allocator import SequenceAllocator
from proinvoice.store.base import (
    ASCENDING, DESCENDING, SERVER_TIMESTAMP, DocumentStore, Transaction,
)
from proinvoice.utils.date_utils import to_epoch_seconds

logger = logging.getLogger(__name__)


def is_invoice_owner(header: Dict[str, Any], caller_id: Optional[str]) -> bool:
    """Predicado puro de autorización: solo el propietario muta o lee el detalle."""
    return bool(caller_id) and header.get("user_id") == caller_id


def require_invoice_owner(header: Dict[str, Any], caller_id: Optional[str]) -> None:
    if not is_invoice_owner(header, caller_id):
        raise UnauthorizedInvoiceAccessError(
            "No autorizado para modificar esta factura",
            details={"invoice_id": header.get("id")},
        )


def created_at_sort_key(header: Dict[str, Any]) -> float:
    seconds = to_epoch_seconds(header.get("created_at"))
    return float("-inf") if seconds is None else seconds


def normalize_created_at(doc: Dict[str, Any]) -> Dict[str, Any]:
    """created_at heredado en otros formatos (epoch, {seconds, nanoseconds}, texto) pasa a datetime UTC o None."""
    created_at = doc.get("created_at")
    if created_at is None or isinstance(created_at, datetime):
        return doc
    seconds = to_epoch_seconds(created_at)
    return {**doc, "created_at": None if seconds is None else datetime.fromtimestamp(seconds, timezone.utc)}


class InvoiceRepository:
    """
    Persistencia de facturas: cabecera + ítems escritos junto con el contador
    en una sola transacción; lecturas con ruta degradada cuando falta el índice.
    """

    def __init__(self,
                 store: DocumentStore,
                 allocator: Optional[SequenceAllocator] = None,
                 invoices_collection: Optional[str] = None,
                 items_collection: Optional[str] = None) -> None:
        self.store = store
        self.allocator = allocator or SequenceAllocator()
        self.invoices_collection = invoices_collection or settings.INVOICES_COLLECTION
        self.items_collection = items_collection or settings.INVOICE_ITEMS_COLLECTION

    async def ensure_indexes(self) -> None:
        await self.store.ensure_index(self.invoices_collection,
                                      [("user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.store.ensure_index(self.invoices_collection,
                                      [("user_id", ASCENDING), ("invoice_number", ASCENDING)])
        await self.store.ensure_index(self.items_collection,
                                      [("header_id", ASCENDING), ("position", ASCENDING)])
        logger.info("✅ Índices de facturas asegurados")

    # ---------------- escritura ---------------- #

    async def create_invoice(self,
                             owner_id: str,
                             customer_name: str,
                             invoice_date: str,
                             items: Iterable[Any],
                             discount_type: DiscountType = "percentage",
                             discount_value: Any = 0,
                             customer_address: Optional[str] = None,
                             customer_phone: Optional[str] = None,
                             currency_symbol: Optional[str] = None) -> str:
        """
        Crea cabecera + ítems y consume el siguiente número en una única
        transacción. Cualquier fallo aborta todo y se propaga sin cambios.

        Returns:
            str: ID de la cabecera creada
        """
        if discount_type not in ("fixed", "percentage"):
            raise ValidationError("Tipo de descuento inválido", details={"discount_type": discount_type})
        lines, totals = normalize_invoice_lines(items, discount_type, discount_value)
        header_id = self.store.new_id()
        item_ids = [self.store.new_id() for _ in lines]
        base_header = {
            "invoice_date": invoice_date,
            "customer_name": customer_name or settings.DEFAULT_CUSTOMER_NAME,
            "customer_address": customer_address or "",
            "customer_phone": customer_phone or "",
            "currency_symbol": currency_symbol or settings.DEFAULT_CURRENCY_SYMBOL,
            "sub_total": totals.sub_total,
            "discount_type": discount_type,
            "discount_value": coerce_number(discount_value),
            "discount_amount": totals.discount_amount,
            "grand_total": totals.grand_total,
            "user_id": owner_id,
        }

        async def _body(txn: Transaction) -> str:
            invoice_number = await self.allocator.allocate(txn)
            header = {
                **base_header,
                "invoice_number": invoice_number,
                "created_at": SERVER_TIMESTAMP,
            }
            await txn.set(self.invoices_collection, header_id, header)
            for item_id, line in zip(item_ids, lines):
                item = line.model_dump(exclude={"id"})
                item["header_id"] = header_id
                await txn.set(self.items_collection, item_id, item)
            return invoice_number

        try:
            invoice_number = await self.store.run_transaction(_body)
        except ProInvoiceError as e:
            logger.error("❌ Transacción de creación fallida para %s: %s", owner_id, e)
            raise
        logger.info("Factura %s creada (%s) para user_id=%s", header_id, invoice_number, owner_id)
        return header_id

    async def _get_header_or_raise(self, invoice_id: str) -> Dict[str, Any]:
        header = await self.store.get(self.invoices_collection, invoice_id)
        if header is None:
            raise InvoiceNotFoundError("Factura no encontrada", details={"invoice_id": invoice_id})
        return header

    async def _find_by_number(self, owner_id: str, invoice_number: str) -> List[Dict[str, Any]]:
        return await self.store.find(self.invoices_collection,
                                     {"user_id": owner_id, "invoice_number": invoice_number})

    async def delete_invoice(self, invoice_id: str, caller_id: str) -> None:
        """
        Borra ítems y luego la cabecera. No es atómico: si falla el borrado de
        la cabecera queda una cabecera sin ítems; repetir la operación es seguro.
        """
        header = await self._get_header_or_raise(invoice_id)
        require_invoice_owner(header, caller_id)

        items = await self.store.find(self.items_collection, {"header_id": invoice_id})
        await asyncio.gather(*(
            self.store.delete(self.items_collection, item["id"]) for item in items
        ))
        await self.store.delete(self.invoices_collection, invoice_id)
        logger.info("Factura %s eliminada (%d ítems)", invoice_id, len(items))

    async def rename_invoice_number(self, invoice_id: str, caller_id: str, new_number: str) -> None:
        # La unicidad por usuario no es transaccional: dos renombres simultáneos
        # al mismo número pueden pasar ambos (gana el último)
        header = await self._get_header_or_raise(invoice_id)
        require_invoice_owner(header, caller_id)

        matches = await self._find_by_number(caller_id, new_number)
        if any(m["id"] != invoice_id for m in matches):
            raise DuplicateInvoiceNumberError(
                "El número de factura ya existe",
                details={"invoice_number": new_number},
            )

        await self.store.update(self.invoices_collection, invoice_id, {"invoice_number": new_number})
        logger.info("Número de factura %s actualizado a %s", invoice_id, new_number)

    async def check_invoice_number_exists(self, owner_id: str, invoice_number: str,
                                          exclude_id: Optional[str] = None) -> bool:
        """
        Chequeo consultivo: ante cualquier fallo devuelve False. No sirve como
        garantía de unicidad; rename_invoice_number vuelve a validar.
        """
        try:
            matches = await self._find_by_number(owner_id, invoice_number)
        except Exception as e:
            logger.error("Error verificando número de factura %s: %s", invoice_number, e)
            return False
        return any(m["id"] != exclude_id for m in matches)

    # ---------------- lectura ---------------- #

    async def list_invoices(self, owner_id: str) -> List[InvoiceHeader]:
        """Cabeceras del usuario, más recientes primero."""
        try:
            docs = await self.store.find(self.invoices_collection, {"user_id": owner_id},
                                         order_by=[("created_at", DESCENDING)])
        except IndexUnavailableError as e:
            logger.warning("🔴 Índice (user_id, created_at) no disponible; ordenando en cliente")
            try:
                docs = await self.store.find(self.invoices_collection, {"user_id": owner_id})
            except Exception as fallback_error:
                logger.error("La consulta de respaldo también falló: %s", fallback_error)
                raise e
            docs.sort(key=created_at_sort_key, reverse=True)
        logger.debug("Obtenidas %d facturas para %s", len(docs), owner_id)
        return [InvoiceHeader(**normalize_created_at(d)) for d in docs]

    async def get_invoice_details(self, invoice_id: str,
                                  caller_id: Optional[str] = None) -> InvoiceDetails:
        """
        Cabecera + ítems en orden de inserción. Sin caller_id no verifica
        propiedad (el llamador obtuvo el id por una vía ya autorizada).
        """
        header = await self._get_header_or_raise(invoice_id)
        if caller_id is not None:
            require_invoice_owner(header, caller_id)
        items = await self.store.find(self.items_collection, {"header_id": invoice_id})
        items.sort(key=lambda i: i.get("position", 0))
        return InvoiceDetails(**normalize_created_at(header), items=[InvoiceLineItem(**i) for i in items])
