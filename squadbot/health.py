import logging
import threading

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)

app = FastAPI()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    return {"status": "ready"}


def start_health_server(port: int) -> threading.Thread:
    """Serve the health endpoints from a daemon thread next to the bot."""
    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="warning")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    thread.start()
    logger.info("Health server listening on port %d", port)
    return thread
