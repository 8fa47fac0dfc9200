"""Read-only JSON API over the status store.

Runs as its own process next to the watcher; the two only share the
database file.

Usage:
    dvstatus-api
    uvicorn src.dvstatus.server:app --port 8000
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DEFAULT_HOST, DEFAULT_PORT
from .logging_config import get_logger, setup_logging
from .routes import status_router, system_router
from .status_store import init_database

logger = get_logger(__name__, namespace='api')

app = FastAPI(title="DV Gateway Status")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(status_router)
app.include_router(system_router)


@app.on_event("startup")
async def startup_event():
    """Make sure the schema exists before the first query."""
    init_database()
    logger.info("Status API ready")


def main():
    import uvicorn

    setup_logging()
    uvicorn.run(app, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
