from __future__ import annotations
from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator

from proinvoice.models.invoice import DiscountType

# Cantidad y precio llegan del formulario como número o texto
Amount = Union[float, str, None]


class InvoiceItemPayload(BaseModel):
    description: str
    quantity: Amount = 1
    price: Amount = 0

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("La descripción del ítem es obligatoria")
        return v.strip()


class InvoiceCreatePayload(BaseModel):
    customer_name: str
    invoice_date: str
    items: List[InvoiceItemPayload] = Field(..., min_length=1)
    discount_type: DiscountType = "percentage"
    discount_value: float = Field(0, ge=0)
    customer_address: Optional[str] = ""
    customer_phone: Optional[str] = ""
    currency_symbol: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def _customer_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("El nombre del cliente es obligatorio")
        return v.strip()


class InvoiceNumberPayload(BaseModel):
    invoice_number: str

    @field_validator("invoice_number")
    @classmethod
    def _strip_number(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("El número de factura no puede estar vacío")
        return v


class InvoiceCreated(BaseModel):
    id: str


class InvoiceNumberExists(BaseModel):
    exists: bool
