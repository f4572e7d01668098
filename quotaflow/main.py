"""
Quotaflow - Sales Commission Service

Main FastAPI application with:
- Commission statements and team reporting
- Attio CRM sync (scheduled, cron-triggered and on demand)
- FX rate management
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from quotaflow.api import api_router
from quotaflow.config import settings
from quotaflow.db import dispose_engine
from quotaflow.scheduler.jobs import scheduler, setup_scheduler
from quotaflow.services.errors import AttioError, NoActivePlanError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: configure and start the scheduler.
    Shutdown: stop the scheduler and dispose the engine.
    """
    logger.info("Starting Quotaflow...")
    setup_scheduler()
    scheduler.start()
    logger.info("Quotaflow started successfully!")

    yield

    logger.info("Shutting down Quotaflow...")
    scheduler.shutdown(wait=False)
    await dispose_engine()


app = FastAPI(
    title="Quotaflow",
    description="Sales commission calculation and Attio reconciliation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


@app.exception_handler(AttioError)
async def attio_error_handler(request: Request, exc: AttioError):
    logger.error(f"Attio error on {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(exc)})


@app.exception_handler(NoActivePlanError)
async def no_active_plan_handler(request: Request, exc: NoActivePlanError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)})


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quotaflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
