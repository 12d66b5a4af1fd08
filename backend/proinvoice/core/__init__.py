# Core module - errores y políticas de reintento
from .exceptions import (
    ProInvoiceError, InvoiceError, InvoiceNotFoundError,
    UnauthorizedInvoiceAccessError, DuplicateInvoiceNumberError,
    StorageError, StoreUnavailableError, IndexUnavailableError,
    TransactionConflictError, ValidationError
)
from .retry import transaction_retry, commit_retry

__all__ = [
    # Exceptions
    'ProInvoiceError', 'InvoiceError', 'InvoiceNotFoundError',
    'UnauthorizedInvoiceAccessError', 'DuplicateInvoiceNumberError',
    'StorageError', 'StoreUnavailableError', 'IndexUnavailableError',
    'TransactionConflictError', 'ValidationError',
    # Retry
    'transaction_retry', 'commit_retry',
]
