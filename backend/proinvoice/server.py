#!/usr/bin/env python3
import uvicorn

from proinvoice.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "proinvoice.api.api:app",   # Usar string de importación en lugar del objeto
        host=settings.API_HOST,
        port=settings.API_PORT,
        workers=1,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False
    )
