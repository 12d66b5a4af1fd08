from __future__ import annotations
import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple

from proinvoice.core.exceptions import IndexUnavailableError, TransactionConflictError
from proinvoice.store.base import (
    DocumentStore, OrderBy, Transaction, index_key, needs_composite_index,
    split_server_timestamps,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_value(value: Any) -> Tuple[int, Any]:
    # None queda siempre antes que cualquier valor en orden ascendente
    return (0, 0) if value is None else (1, value)


class MemoryTransaction(Transaction):
    """
    Transacción optimista: registra la versión de cada documento leído y
    acumula escrituras; en commit valida el read-set y aplica todo de una vez.
    """

    def __init__(self, store: "MemoryDocumentStore") -> None:
        self._store = store
        self._reads: Dict[Tuple[str, str], int] = {}
        self._writes: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._closed = False

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        key = (collection, doc_id)
        if key in self._writes:
            return self._store._present(doc_id, self._writes[key])
        self._reads.setdefault(key, self._store._versions.get(key, 0))
        doc = self._store._read(collection, doc_id)
        # Cede el control tras leer para que otras transacciones puedan intercalarse
        await asyncio.sleep(0)
        return doc

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writes[(collection, doc_id)] = copy.deepcopy(data)

    async def commit(self) -> None:
        if self._closed:
            return
        stale = [key for key, version in self._reads.items()
                 if self._store._versions.get(key, 0) != version]
        if stale:
            self._closed = True
            raise TransactionConflictError(
                "Conflicto de escritura en transacción",
                details={"documents": ["/".join(key) for key in stale]},
            )
        now = self._store._clock()
        for (collection, doc_id), data in self._writes.items():
            plain, stamps = split_server_timestamps(data)
            for field in stamps:
                plain[field] = now
            self._store._write(collection, doc_id, plain)
        self._closed = True

    async def abort(self) -> None:
        self._writes.clear()
        self._closed = True


class MemoryDocumentStore(DocumentStore):
    """
    Almacén en proceso con la misma semántica que el de MongoDB: control de
    concurrencia optimista por versión de documento e índices compuestos
    obligatorios para consultas filtro+orden.
    """

    def __init__(self,
                 clock: Optional[Callable[[], datetime]] = None,
                 max_attempts: Optional[int] = None,
                 retry_max_wait: Optional[float] = None) -> None:
        super().__init__(max_attempts=max_attempts, retry_max_wait=retry_max_wait)
        self._clock = clock or _utcnow
        self._docs: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._versions: Dict[Tuple[str, str], int] = {}
        self._indexes: Set[Tuple[str, Tuple[Tuple[str, int], ...]]] = set()

    # ---------------- internos ---------------- #

    @staticmethod
    def _present(doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(data)
        doc["id"] = doc_id
        return doc

    def _read(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self._docs.get(collection, {}).get(doc_id)
        return None if data is None else self._present(doc_id, data)

    def _write(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        data = {k: v for k, v in data.items() if k != "id"}
        self._docs.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        key = (collection, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1

    # ---------------- API ---------------- #

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self._read(collection, doc_id)

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        current = self._docs.get(collection, {}).get(doc_id)
        if current is None:
            return False
        plain, stamps = split_server_timestamps(fields)
        merged = {**current, **plain}
        for field in stamps:
            merged[field] = self._clock()
        self._write(collection, doc_id, merged)
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        docs = self._docs.get(collection, {})
        if doc_id not in docs:
            return False
        del docs[doc_id]
        key = (collection, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1
        return True

    async def find(self, collection: str, filters: Dict[str, Any],
                   order_by: Optional[OrderBy] = None) -> List[Dict[str, Any]]:
        if needs_composite_index(filters, order_by):
            required = (collection, index_key(filters, order_by))
            if required not in self._indexes:
                raise IndexUnavailableError(
                    "La consulta requiere un índice compuesto inexistente",
                    details={"collection": collection, "index": list(required[1])},
                )
        rows = [
            self._present(doc_id, data)
            for doc_id, data in self._docs.get(collection, {}).items()
            if all(data.get(k) == v for k, v in filters.items())
        ]
        for field, direction in reversed(list(order_by or ())):
            rows.sort(key=lambda r: _sort_value(r.get(field)), reverse=direction < 0)
        return rows

    async def ensure_index(self, collection: str, keys: Sequence[Tuple[str, int]]) -> None:
        self._indexes.add((collection, tuple((f, d) for f, d in keys)))

    async def drop_indexes(self, collection: str) -> None:
        self._indexes = {ix for ix in self._indexes if ix[0] != collection}

    async def begin(self) -> Transaction:
        return MemoryTransaction(self)
