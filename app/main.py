import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.endpoints import health, ip_info, location
from app.core.config import settings
from app.services.location import create_location_orchestrator

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Start the first load cycle on startup, same as opening the page
    orchestrator = create_location_orchestrator()
    app.state.location = orchestrator
    await orchestrator.load()
    logger.info("Location assistant started")
    yield
    # Drop every pending completion
    await orchestrator.close()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response


app.add_middleware(NoCacheMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins in development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="", tags=["health"])

app.include_router(ip_info.router, prefix="/ip-info", tags=["ip-info"])

app.include_router(location.router, prefix="/location", tags=["location"])
