from __future__ import annotations
import math
from typing import Any, Iterable, List, Literal, Optional, Tuple
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

DiscountType = Literal["fixed", "percentage"]


class InvoiceLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    id: Optional[str] = None
    description: str
    quantity: float = 0.0
    price: float = 0.0
    total: float = 0.0  # snapshot: cantidad * precio al momento de crear
    position: int = 0


class InvoiceTotals(BaseModel):
    sub_total: float = 0.0
    discount_amount: float = 0.0
    grand_total: float = 0.0


class InvoiceHeader(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    id: str
    invoice_number: str
    invoice_date: str
    customer_name: str
    customer_address: Optional[str] = ""
    customer_phone: Optional[str] = ""
    currency_symbol: str

    # Totales
    sub_total: float = 0.0
    discount_type: DiscountType = "percentage"
    discount_value: float = 0.0
    discount_amount: float = 0.0
    grand_total: float = 0.0

    # Metadata
    created_at: Optional[datetime] = None
    user_id: str


class InvoiceDetails(InvoiceHeader):
    items: List[InvoiceLineItem] = Field(default_factory=list)


def coerce_number(value: Any) -> float:
    """Convierte a número; vacío, no numérico o NaN equivale a 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def build_line_items(items: Iterable[Any]) -> List[InvoiceLineItem]:
    lines: List[InvoiceLineItem] = []
    for position, raw in enumerate(items):
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        quantity = coerce_number(raw.get("quantity"))
        price = coerce_number(raw.get("price"))
        lines.append(InvoiceLineItem(
            description=str(raw.get("description") or ""),
            quantity=quantity,
            price=price,
            total=quantity * price,
            position=position,
        ))
    return lines


def compute_totals(
    lines: Iterable[InvoiceLineItem],
    discount_type: DiscountType,
    discount_value: Any,
) -> InvoiceTotals:
    """
    subTotal = suma de totales de línea
    descuento = valor fijo, o subTotal * valor / 100 si es porcentaje
    grandTotal = max(0, subTotal - descuento)
    """
    sub_total = sum(line.total for line in lines)
    value = coerce_number(discount_value)
    if discount_type == "percentage":
        discount_amount = sub_total * (value / 100)
    else:
        discount_amount = value
    return InvoiceTotals(
        sub_total=sub_total,
        discount_amount=discount_amount,
        grand_total=max(0.0, sub_total - discount_amount),
    )


def normalize_invoice_lines(
    items: Iterable[Any],
    discount_type: DiscountType,
    discount_value: Any,
) -> Tuple[List[InvoiceLineItem], InvoiceTotals]:
    lines = build_line_items(items)
    return lines, compute_totals(lines, discount_type, discount_value)
