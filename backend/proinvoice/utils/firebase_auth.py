"""
Identidad del llamador a partir de un ID token de Firebase.

Contrato: el propietario de una factura es el `user_id` del token (o `sub`
cuando el emisor no incluye `user_id`). Ningún otro claim interviene en la
autorización de facturas.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import HTTPException, Request
from proinvoice.config.settings import settings
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests

logger = logging.getLogger(__name__)


def user_id_from_claims(claims: Dict[str, Any]) -> str:
    user_id = claims.get('user_id') or claims.get('sub')
    if not user_id:
        raise HTTPException(status_code=401, detail="Auth inválida: token sin identificador de usuario")
    return str(user_id)


def verify_firebase_token(token: str) -> Dict[str, Any]:
    try:
        req = google_requests.Request()
        claims = id_token.verify_firebase_token(token, req, audience=settings.FIREBASE_PROJECT_ID)
    except Exception as e:
        raise HTTPException(status_code=401, detail=f"Auth inválida: {str(e)}")
    if not claims:
        raise HTTPException(status_code=401, detail="Auth inválida: token rechazado")
    expected_iss = f"https://securetoken.google.com/{settings.FIREBASE_PROJECT_ID}"
    if claims.get('iss') != expected_iss:
        logger.warning("Token con issuer inesperado: %s", claims.get('iss'))
        raise HTTPException(status_code=401, detail="Auth inválida: issuer inválido")
    return claims


def extract_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get('Authorization') or ''
    if not auth.lower().startswith('bearer '):
        return None
    return auth.split(' ', 1)[1].strip() or None


def authenticated_user_id(request: Request) -> Optional[str]:
    """user_id del token Bearer; None si la petición no trae token."""
    token = extract_bearer_token(request)
    if not token:
        return None
    return user_id_from_claims(verify_firebase_token(token))
