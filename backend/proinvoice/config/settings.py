import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Cargar variables de entorno desde el archivo .env
load_dotenv(encoding="utf-8")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseSettings):
    # App
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

    # MongoDB
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://localhost:27017/?replicaSet=rs0")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "proinvoice")
    MONGODB_TIMEOUT_MS: int = int(os.getenv("MONGODB_TIMEOUT_MS", 10000))
    # Las consultas filtro+orden usan hint sobre el índice compuesto (falla si no existe)
    MONGODB_REQUIRE_QUERY_INDEXES: bool = _env_flag("MONGODB_REQUIRE_QUERY_INDEXES", "true")
    MONGODB_ENSURE_INDEXES: bool = _env_flag("MONGODB_ENSURE_INDEXES", "true")

    # Colecciones
    INVOICES_COLLECTION: str = os.getenv("INVOICES_COLLECTION", "invoices")
    INVOICE_ITEMS_COLLECTION: str = os.getenv("INVOICE_ITEMS_COLLECTION", "invoice_items")
    COUNTERS_COLLECTION: str = os.getenv("COUNTERS_COLLECTION", "counters")
    INVOICE_COUNTER_KEY: str = os.getenv("INVOICE_COUNTER_KEY", "invoices")

    # Numeración y valores por defecto
    INVOICE_NUMBER_PREFIX: str = os.getenv("INVOICE_NUMBER_PREFIX", "BILL")
    INVOICE_NUMBER_WIDTH: int = int(os.getenv("INVOICE_NUMBER_WIDTH", 3))
    DEFAULT_CURRENCY_SYMBOL: str = os.getenv("DEFAULT_CURRENCY_SYMBOL", "₹")
    DEFAULT_CUSTOMER_NAME: str = os.getenv("DEFAULT_CUSTOMER_NAME", "Unknown Customer")

    # Transacciones
    TRANSACTION_MAX_ATTEMPTS: int = int(os.getenv("TRANSACTION_MAX_ATTEMPTS", 10))
    TRANSACTION_RETRY_MAX_WAIT: float = float(os.getenv("TRANSACTION_RETRY_MAX_WAIT", 2.0))

    # API
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", 8000))

    # Auth
    AUTH_REQUIRE: bool = _env_flag("AUTH_REQUIRE", "true")
    FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "proinvoice")

    # Sesiones invitado (sin persistencia compartida)
    GUEST_MODE_ENABLED: bool = _env_flag("GUEST_MODE_ENABLED", "true")
    GUEST_USER_ID: str = os.getenv("GUEST_USER_ID", "guest_session")
    GUEST_SESSION_LIMIT: int = int(os.getenv("GUEST_SESSION_LIMIT", 500))

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignorar campos adicionales en lugar de lanzar un error
    }


settings = Settings()
