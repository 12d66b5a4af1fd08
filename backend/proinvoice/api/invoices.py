from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status

from proinvoice.api.deps import Caller, get_caller, get_invoice_repository
from proinvoice.api.schemas import (
    InvoiceCreated, InvoiceCreatePayload, InvoiceNumberExists, InvoiceNumberPayload,
)
from proinvoice.models.invoice import InvoiceDetails, InvoiceHeader
from proinvoice.repositories.invoice_repository import InvoiceRepository

router = APIRouter(prefix="/api", tags=["invoices"])


@router.post("/invoices", response_model=InvoiceCreated, status_code=status.HTTP_201_CREATED)
async def create_invoice(payload: InvoiceCreatePayload,
                         caller: Caller = Depends(get_caller),
                         repo: InvoiceRepository = Depends(get_invoice_repository)):
    invoice_id = await repo.create_invoice(
        caller.user_id,
        payload.customer_name,
        payload.invoice_date,
        [item.model_dump() for item in payload.items],
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        customer_address=payload.customer_address,
        customer_phone=payload.customer_phone,
        currency_symbol=payload.currency_symbol,
    )
    return InvoiceCreated(id=invoice_id)


@router.get("/invoices", response_model=List[InvoiceHeader])
async def list_invoices(caller: Caller = Depends(get_caller),
                        repo: InvoiceRepository = Depends(get_invoice_repository)):
    return await repo.list_invoices(caller.user_id)


@router.get("/invoices/number-exists", response_model=InvoiceNumberExists)
async def invoice_number_exists(invoice_number: str = Query(..., min_length=1),
                                exclude_id: Optional[str] = None,
                                caller: Caller = Depends(get_caller),
                                repo: InvoiceRepository = Depends(get_invoice_repository)):
    exists = await repo.check_invoice_number_exists(caller.user_id, invoice_number.strip(), exclude_id)
    return InvoiceNumberExists(exists=exists)


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetails)
async def get_invoice(invoice_id: str,
                      caller: Caller = Depends(get_caller),
                      repo: InvoiceRepository = Depends(get_invoice_repository)):
    return await repo.get_invoice_details(invoice_id, caller_id=caller.user_id)


@router.patch("/invoices/{invoice_id}/number", status_code=status.HTTP_204_NO_CONTENT)
async def rename_invoice_number(invoice_id: str,
                                payload: InvoiceNumberPayload,
                                caller: Caller = Depends(get_caller),
                                repo: InvoiceRepository = Depends(get_invoice_repository)):
    await repo.rename_invoice_number(invoice_id, caller.user_id, payload.invoice_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str,
                         caller: Caller = Depends(get_caller),
                         repo: InvoiceRepository = Depends(get_invoice_repository)):
    await repo.delete_invoice(invoice_id, caller.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/guest-session", status_code=status.HTTP_204_NO_CONTENT)
async def end_guest_session(request: Request, caller: Caller = Depends(get_caller)):
    if caller.is_guest:
        request.app.state.guest_sessions.discard(caller.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
