import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ayah_shorts.api import render
from ayah_shorts.api.websocket import RenderProgressNotifier, WebSocketManager
from ayah_shorts.config import get_settings
from ayah_shorts.exceptions import AyahShortsError
from ayah_shorts.render.executor import FFmpegExecutor
from ayah_shorts.services.job_manager import RenderJobManager, RenderJobRegistry

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# Per-request access lines drown out render progress
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    registry = RenderJobRegistry()
    websocket_manager = WebSocketManager()
    notifier = RenderProgressNotifier(websocket_manager)
    app.state.registry = registry
    app.state.websocket_manager = websocket_manager
    app.state.job_manager = RenderJobManager(registry, FFmpegExecutor(), notifier)
    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
    yield
    # Shutdown
    await app.state.job_manager.shutdown()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AyahShortsError)
async def ayah_shorts_exception_handler(request: Request, exc: AyahShortsError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict()},
    )


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": AyahShortsError("Internal server error").to_dict()},
    )


# Routers
app.include_router(render.router, prefix="/api", tags=["render"])


@app.get("/health")
async def health_check() -> dict:
    return {"status": "healthy", "version": settings.app_version}
