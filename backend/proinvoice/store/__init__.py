from .base import (
    ASCENDING, DESCENDING, SERVER_TIMESTAMP, DocumentStore, Transaction,
)
from .memory_store import MemoryDocumentStore

__all__ = [
    'ASCENDING', 'DESCENDING', 'SERVER_TIMESTAMP', 'DocumentStore', 'Transaction',
    'MemoryDocumentStore',
]
