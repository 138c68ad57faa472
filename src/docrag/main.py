import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from docrag.api import (
    chat_router,
    documents_router,
    insights_router,
    install_error_handlers,
    setup_router,
)
from docrag.logging_config import configure_logging
from docrag.settings import get_settings
from docrag.telemetry import emit_app_startup_event

configure_logging(get_settings().log_dir)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="docrag API")
install_error_handlers(app)
app.include_router(chat_router)
app.include_router(documents_router)
app.include_router(insights_router)
app.include_router(setup_router)


@app.on_event("startup")
async def _emit_startup() -> None:
    emit_app_startup_event()
    LOGGER.info("docrag API started")


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"
