import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proinvoice import __version__
from proinvoice.api.guest_sessions import GuestSessionRegistry
from proinvoice.api.invoices import router as invoices_router
from proinvoice.config.settings import settings
from proinvoice.core.exceptions import (
    DuplicateInvoiceNumberError, InvoiceNotFoundError, ProInvoiceError,
    StoreUnavailableError, TransactionConflictError, UnauthorizedInvoiceAccessError,
    ValidationError,
)
from proinvoice.repositories.invoice_repository import InvoiceRepository
from proinvoice.store.base import DocumentStore

# Configurar logging
_handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    _handlers.append(logging.FileHandler(settings.LOG_FILE))
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=_handlers
)

logger = logging.getLogger(__name__)

# Más específico primero
ERROR_STATUS = [
    (InvoiceNotFoundError, 404),
    (UnauthorizedInvoiceAccessError, 403),
    (DuplicateInvoiceNumberError, 409),
    (ValidationError, 422),
    (StoreUnavailableError, 503),
    (TransactionConflictError, 503),
]


def status_for(exc: ProInvoiceError) -> int:
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return 500


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Construye la app. Sin `store` se abre MongoDB al arrancar y se cierra al
    apagar; con `store` se usa el inyectado (tests, entornos embebidos).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = store
        if active is None:
            from proinvoice.store.mongo_store import MongoDocumentStore
            active = MongoDocumentStore()
        repo = InvoiceRepository(active)
        if settings.MONGODB_ENSURE_INDEXES:
            try:
                await repo.ensure_indexes()
            except ProInvoiceError as e:
                # La lectura degradada cubre el índice faltante
                logger.warning("⚠️ No se pudieron asegurar índices: %s", e)
        app.state.store = active
        app.state.invoice_repository = repo
        app.state.guest_sessions = GuestSessionRegistry()
        logger.info("🚀 ProInvoice API iniciada")
        yield
        if store is None:
            await active.close()

    app = FastAPI(
        title="ProInvoice API",
        description="API de facturas numeradas secuencialmente sobre MongoDB",
        version=__version__,
        lifespan=lifespan,
    )

    # Configurar CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # En producción, limitar a dominios específicos
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProInvoiceError)
    async def _proinvoice_error_handler(request: Request, exc: ProInvoiceError):
        code = status_for(exc)
        if code >= 500:
            logger.error("Error en %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.get("/health")
    async def health(request: Request):
        ok = await request.app.state.store.ping()
        return JSONResponse(status_code=200 if ok else 503,
                            content={"status": "ok" if ok else "degraded", "version": __version__})

    app.include_router(invoices_router)
    return app


app = create_app()
