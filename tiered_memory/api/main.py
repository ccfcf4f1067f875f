"""Main FastAPI application and server startup."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
import uvicorn

from tiered_memory.config.logging import setup_logging
from tiered_memory.config.settings import Settings
from tiered_memory.memory.store import MemoryStore

from .memory import router as memory_router


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[MemoryStore] = None) -> FastAPI:
    """
    Build the API application.

    The memory store lives for the lifetime of the app: it is created (or
    taken from ``store``) and initialized at startup and closed at shutdown.

    Args:
        settings: Settings (default: Settings.from_env())
        store: Pre-built store, e.g. with a fixed clock in tests
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        memory_store = store or MemoryStore(settings)
        await memory_store.init()
        app.state.memory_store = memory_store
        try:
            yield
        finally:
            memory_store.close()
            app.state.memory_store = None

    app = FastAPI(
        title="Tiered Memory API",
        description="Per-user short-term, long-term, working and fact memory with durable logs",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(memory_router, prefix="/api")

    @app.get("/health")
    async def health():
        """Liveness check with the memory store state."""
        memory_store = getattr(app.state, "memory_store", None)
        return {
            "status": "ok" if memory_store is not None else "starting",
            "memory_dir": str(memory_store.log.root) if memory_store is not None else str(settings.paths.memory_dir),
            "users_loaded": len(memory_store.known_users()) if memory_store is not None else 0,
        }

    return app


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, settings: Optional[Settings] = None) -> None:
    """Run the API with uvicorn."""
    settings = settings or Settings.from_env()
    setup_logging(settings)
    logger.info("Starting memory API on %s:%d", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run_server()
