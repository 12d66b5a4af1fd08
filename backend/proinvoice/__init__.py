"""ProInvoice: facturas numeradas secuencialmente sobre un almacén documental."""

__version__ = "1.0.0"
