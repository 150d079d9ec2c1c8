import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .config import configure_logging, load_settings
from .routes import mail


log = logging.getLogger("graphmailkit.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup; close the relay's HTTP client on shutdown."""
    settings = load_settings()
    configure_logging(settings.log_level)
    log.info("GraphMailKit relay %s starting", __version__)
    yield
    if mail.get_mail_client.cache_info().currsize:
        mail.get_mail_client().close()
        mail.get_mail_client.cache_clear()


app = FastAPI(title="GraphMailKit Relay", version=__version__, lifespan=lifespan)
app.include_router(mail.router)


@app.get("/api/health")
def health():
    """Minimal liveness endpoint."""
    return {"status": "ok"}
