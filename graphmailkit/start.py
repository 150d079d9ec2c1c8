"""Relay launcher: starts Uvicorn on GRAPHMAILKIT_HOST:GRAPHMAILKIT_PORT."""
from __future__ import annotations

from .config import load_settings


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "graphmailkit.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
