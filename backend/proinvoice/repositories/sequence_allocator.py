"""
Asignador de numeración de facturas.

Un único documento contador (colección `counters`, clave `invoices`) guarda
el último número emitido. Toda asignación ocurre dentro de la misma
transacción que escribe la cabecera que consume el número: si la transacción
aborta, el contador no avanza y no quedan huecos.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from proinvoice.config.settings import settings
from proinvoice.core.exceptions import ValidationError
from proinvoice.models.invoice import coerce_number
from proinvoice.store.base import DocumentStore, Transaction

logger = logging.getLogger(__name__)

COUNTER_FIELD = "last_invoice_number"


def _now() -> datetime:
    """Fecha/hora actual en la zona configurada."""
    try:
        tz = ZoneInfo(settings.TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("⚠️ TIMEZONE inválida %r; se usa UTC para el año de numeración", settings.TIMEZONE)
        tz = ZoneInfo("UTC")
    return datetime.now(tz)


def _counter_value(doc) -> int:
    if not doc:
        return 0
    return int(coerce_number(doc.get(COUNTER_FIELD)))


class SequenceAllocator:
    def __init__(self,
                 collection: Optional[str] = None,
                 counter_key: Optional[str] = None,
                 prefix: Optional[str] = None,
                 width: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.collection = collection or settings.COUNTERS_COLLECTION
        self.counter_key = counter_key or settings.INVOICE_COUNTER_KEY
        self.prefix = prefix or settings.INVOICE_NUMBER_PREFIX
        self.width = width or settings.INVOICE_NUMBER_WIDTH
        self._clock = clock or _now

    def format_number(self, sequence: int, when: Optional[datetime] = None) -> str:
        # El ancho es un mínimo: 1000 se muestra completo
        year = (when or self._clock()).year % 100
        return f"{self.prefix}/{year:02d}/{sequence:0{self.width}d}"

    async def allocate(self, txn: Transaction) -> str:
        """
        Lee el contador dentro de `txn`, escribe el siguiente valor y devuelve
        el número formateado. Sin estado propio: re-ejecutarlo en un reintento
        de la transacción es seguro.
        """
        doc = await txn.get(self.collection, self.counter_key)
        next_number = _counter_value(doc) + 1
        await txn.set(self.collection, self.counter_key, {COUNTER_FIELD: next_number})
        return self.format_number(next_number)

    async def last_issued(self, store: DocumentStore) -> int:
        return _counter_value(await store.get(self.collection, self.counter_key))

    async def seed(self, store: DocumentStore, value: int) -> int:
        """Fija el último número emitido (migraciones). Nunca retrocede: un número ya emitido no se reutiliza."""
        if value < 0:
            raise ValidationError("El contador no puede ser negativo", details={"value": value})

        async def _body(txn: Transaction) -> int:
            current = _counter_value(await txn.get(self.collection, self.counter_key))
            if value < current:
                raise ValidationError(
                    "El contador solo puede avanzar",
                    details={"current": current, "requested": value},
                )
            await txn.set(self.collection, self.counter_key, {COUNTER_FIELD: value})
            return current

        previous = await store.run_transaction(_body)
        logger.warning("Contador %s/%s fijado: %s -> %s",
                       self.collection, self.counter_key, previous, value)
        return previous
