"""Application entry point for the flips server."""

from __future__ import annotations

import os

import uvicorn

from flip_manager.config.settings import AppConfig


def main() -> None:
    """Start the flips server."""
    config = AppConfig()
    reload = os.getenv("FLIPS_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "flip_manager.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
