from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from card_bills.bill_routes import router as bills_router
from settings.logging_config import configure_logging
import logging

logger = logging.getLogger(__name__)


def get_app() -> FastAPI:
    configure_logging()
    logger.info("Starting BillSync API")
    app = FastAPI(title="BillSync API")

    # CORS: the device app talks to this API from a webview origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(bills_router)
    logger.info("Routers initialized successfully")

    # Health
    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "ok"}

    logger.info("API started")
    return app


# ASGI app instance
app = get_app()
