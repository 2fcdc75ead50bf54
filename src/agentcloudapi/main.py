"""The agentcloud API application and its MCP server."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_mcp import AuthConfig, FastApiMCP

from .auth import get_current_account
from .config import settings
from .routes import (
    accounts,
    agents,
    airbyte,
    apps,
    assets,
    datasources,
    models,
    notifications,
    onboarding,
    public,
    sessions,
    tasks,
    team,
    tools,
)
from .services.airbyte_client import AirbyteClientError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.enable_scheduler:
        yield
        return

    from .tasks.background import refresh_datasource_jobs

    scheduler.add_job(
        refresh_datasource_jobs, "interval", minutes=settings.datasource_poll_minutes
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()


app = FastAPI(title="agentcloud-api", lifespan=lifespan)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Log the traceback and hide it from the caller."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed ids and bodies are reported as 422 with the pydantic errors."""
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(AirbyteClientError)
async def airbyte_exception_handler(request: Request, exc: AirbyteClientError):
    """Report Airbyte failures as a bad gateway."""
    return JSONResponse(status_code=502, content={"detail": str(exc)})


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include all routers; public and account routes first so the team slug
# prefix does not capture them
app.include_router(public.router)
app.include_router(accounts.router)
app.include_router(airbyte.webhooks_router)
app.include_router(airbyte.router)
app.include_router(onboarding.router)
app.include_router(team.router)
app.include_router(apps.router)
app.include_router(agents.router)
app.include_router(tasks.router)
app.include_router(tools.router)
app.include_router(models.router)
app.include_router(datasources.router)
app.include_router(sessions.router)
app.include_router(assets.router)
app.include_router(notifications.router)

# Expose the mcp tagged read routes as MCP tools once every router is included
mcp = FastApiMCP(
    app,
    name="agentcloud-api",
    include_tags=["mcp"],
    describe_all_responses=True,
    describe_full_response_schema=True,
    auth_config=AuthConfig(dependencies=[Depends(get_current_account)]),
)
mcp.mount_http()

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
