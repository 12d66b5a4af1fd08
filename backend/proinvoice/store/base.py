"""
Frontera del almacén documental.

El repositorio solo conoce esta interfaz: documentos direccionados por
(colección, id), consultas por igualdad con orden opcional y transacciones
lectura-escritura con reintento ante conflicto optimista.
"""
from __future__ import annotations
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from proinvoice.core.retry import transaction_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

ASCENDING = 1
DESCENDING = -1

OrderBy = Sequence[Tuple[str, int]]


class _ServerTimestamp:
    """Marcador: el almacén sustituye el valor por su propio reloj al escribir."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    # Singleton: las copias deben seguir siendo el mismo marcador
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def split_server_timestamps(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    plain = {k: v for k, v in data.items() if v is not SERVER_TIMESTAMP}
    stamps = [k for k, v in data.items() if v is SERVER_TIMESTAMP]
    return plain, stamps


def index_key(filters: Dict[str, Any], order_by: Optional[OrderBy]) -> Tuple[Tuple[str, int], ...]:
    """Índice compuesto que necesita una consulta filtro+orden."""
    keys = [(field, ASCENDING) for field in filters]
    keys.extend((field, direction) for field, direction in (order_by or ()))
    return tuple(keys)


def needs_composite_index(filters: Dict[str, Any], order_by: Optional[OrderBy]) -> bool:
    if not filters or not order_by:
        return False
    return any(field not in filters for field, _ in order_by)


class Transaction(ABC):
    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Crea o sobrescribe el documento completo."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Confirma; lanza TransactionConflictError si el read-set quedó obsoleto."""
        ...

    @abstractmethod
    async def abort(self) -> None:
        ...


class DocumentStore(ABC):
    def __init__(self, max_attempts: Optional[int] = None, retry_max_wait: Optional[float] = None) -> None:
        self.max_attempts = max_attempts
        self.retry_max_wait = retry_max_wait

    def new_id(self) -> str:
        return uuid.uuid4().hex

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    async def find(self, collection: str, filters: Dict[str, Any],
                   order_by: Optional[OrderBy] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def ensure_index(self, collection: str, keys: Sequence[Tuple[str, int]]) -> None:
        ...

    @abstractmethod
    async def begin(self) -> Transaction:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def run_transaction(self, body: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Ejecuta body(txn) y confirma. Ante conflicto se re-ejecuta el cuerpo
        completo; cualquier otro error aborta y se propaga sin cambios.
        """
        result: Any = None
        async for attempt in transaction_retry(self.max_attempts, self.retry_max_wait):
            with attempt:
                txn = await self.begin()
                try:
                    result = await body(txn)
                    await txn.commit()
                except BaseException:
                    await txn.abort()
                    raise
        return result
