from fastapi import FastAPI
import logging

from command_history.api.routes import router
from command_history.runtime.startup import init_history_for_app

app = FastAPI(title="command-history", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    history = init_history_for_app()
    logger.info("History ready (coalescence window %d ms)", history.coalescence_window_ms)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "command-history", "version": "0.1.0"}
