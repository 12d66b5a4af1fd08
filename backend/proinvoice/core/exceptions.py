"""
Excepciones base estandarizadas para ProInvoice.

Jerarquía:
    ProInvoiceError (base)
    ├── InvoiceError
    │   ├── InvoiceNotFoundError
    │   ├── UnauthorizedInvoiceAccessError
    │   └── DuplicateInvoiceNumberError
    ├── StorageError
    │   ├── StoreUnavailableError
    │   ├── IndexUnavailableError
    │   └── TransactionConflictError
    └── ValidationError
"""
from typing import Optional, Dict, Any


class ProInvoiceError(Exception):
    """
    Base exception para todos los errores de ProInvoice.

    Attributes:
        message: Mensaje descriptivo del error.
        code: Código único para identificar el tipo de error.
        details: Información adicional para debugging.
    """
    code: str = "PROINVOICE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializa el error a diccionario para respuestas API."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details
        }


# ============ Invoice Errors ============

class InvoiceError(ProInvoiceError):
    """Errores de negocio sobre facturas."""
    code = "INVOICE_ERROR"


class InvoiceNotFoundError(InvoiceError):
    """La cabecera referenciada no existe."""
    code = "INVOICE_NOT_FOUND"


class UnauthorizedInvoiceAccessError(InvoiceError):
    """El usuario que llama no es el propietario de la factura."""
    code = "INVOICE_UNAUTHORIZED"


class DuplicateInvoiceNumberError(InvoiceError):
    """Otra factura del mismo usuario ya usa ese número."""
    code = "INVOICE_NUMBER_DUPLICATE"


# ============ Storage Errors ============

class StorageError(ProInvoiceError):
    """Errores del almacén documental (MongoDB, memoria)."""
    code = "STORAGE_ERROR"


class StoreUnavailableError(StorageError):
    """Almacén inalcanzable o fallo de transporte."""
    code = "STORE_UNAVAILABLE"


class IndexUnavailableError(StorageError):
    """La consulta filtro+orden requiere un índice compuesto inexistente."""
    code = "INDEX_UNAVAILABLE"


class TransactionConflictError(StorageError):
    """Conflicto de escritura; se agotaron los reintentos de la transacción."""
    code = "TRANSACTION_CONFLICT"


# ============ Validation Errors ============

class ValidationError(ProInvoiceError):
    """Errores de validación de datos."""
    code = "VALIDATION_ERROR"
