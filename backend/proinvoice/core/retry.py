"""
Políticas de retry con backoff exponencial usando tenacity.

Uso:
    from proinvoice.core.retry import transaction_retry

    async for attempt in transaction_retry():
        with attempt:
            ...  # cuerpo completo de la transacción
"""
import logging
from typing import Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
    before_sleep_log,
)

from proinvoice.config.settings import settings
from proinvoice.core.exceptions import TransactionConflictError

logger = logging.getLogger(__name__)


# ============ Transaction Retry ============

def transaction_retry(
    max_attempts: Optional[int] = None,
    max_wait: Optional[float] = None,
) -> AsyncRetrying:
    """
    Reintento del cuerpo completo de una transacción ante conflicto optimista.
    - TRANSACTION_MAX_ATTEMPTS intentos como máximo
    - Backoff exponencial aleatorio (evita que los escritores choquen en fase)
    - Solo reintenta TransactionConflictError; al agotarse relanza el conflicto
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts or settings.TRANSACTION_MAX_ATTEMPTS),
        wait=wait_random_exponential(
            multiplier=0.05,
            max=settings.TRANSACTION_RETRY_MAX_WAIT if max_wait is None else max_wait,
        ),
        retry=retry_if_exception_type(TransactionConflictError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )


# ============ Commit Retry ============

def commit_retry(is_retryable) -> AsyncRetrying:
    """
    Reintento del commit cuando el resultado es desconocido.
    - 3 intentos máximo
    - Backoff exponencial rápido: 0.1s → 1s
    """
    return AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
