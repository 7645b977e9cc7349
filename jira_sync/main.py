from contextlib import asynccontextmanager
from datetime import datetime
import logging
from fastapi import FastAPI

from jira_sync.config import settings
from jira_sync.database import init_db
from jira_sync.api import health, projects, sync
from jira_sync.core.sync_scheduler import sync_scheduler


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events for the application."""
    # Startup
    await init_db()

    try:
        await sync_scheduler.start()
    except Exception as e:
        logging.error(f"Failed to start sync scheduler: {e}", exc_info=True)

    yield

    # Shutdown
    await sync_scheduler.stop()


app = FastAPI(
    title=settings.app_title,
    description=settings.app_description,
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(sync.router)
app.include_router(projects.router)
app.include_router(health.router)


@app.get("/health")
async def health_legacy():
    """
    Plain liveness check.

    For database and scheduler status, use /api/health instead.
    """
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "jira_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
