from dataclasses import dataclass
from fastapi import Depends, HTTPException, Request
from proinvoice.config.settings import settings
from proinvoice.repositories.invoice_repository import InvoiceRepository
from proinvoice.utils.firebase_auth import authenticated_user_id

GUEST_HEADER = "X-Guest-Session"


@dataclass(frozen=True)
class Caller:
    user_id: str
    is_guest: bool = False


def get_caller(request: Request) -> Caller:
    """Valida token Firebase y retorna la identidad; sin token, sesión invitado si está permitida."""
    user_id = authenticated_user_id(request)
    if user_id:
        return Caller(user_id=user_id)

    guest_session = (request.headers.get(GUEST_HEADER) or '').strip()
    if settings.GUEST_MODE_ENABLED and guest_session:
        return Caller(user_id=f"guest_{guest_session}", is_guest=True)
    if not settings.AUTH_REQUIRE:
        return Caller(user_id=settings.GUEST_USER_ID, is_guest=True)
    raise HTTPException(status_code=401, detail="Authorization requerido")


async def get_invoice_repository(request: Request, caller: Caller = Depends(get_caller)) -> InvoiceRepository:
    if caller.is_guest:
        return await request.app.state.guest_sessions.repository_for(caller.user_id)
    return request.app.state.invoice_repository
