import logging

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.deps import get_kv_facade
from db.connection import get_redis_client
from schemas.kv import HealthResponse
from services.kv_facade import KeyValueFacade
from utils.logging import configure_logging

# Routers
from routers.kv_route import router as kv_router

settings = get_settings()

# Logging Configuration
configure_logging(settings.log_level)
logger = logging.getLogger("kv_facade")


# Lifespan Events (Startup/Shutdown)
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.app_name} ({settings.environment})...")
    yield
    logger.info(f"Shutting down {settings.app_name}...")
    if get_redis_client.cache_info().currsize:
        get_redis_client().close()


# FastAPI App Setup
app = FastAPI(
    title=settings.app_name,
    description="Uniform key-value access over a shared redis store.",
    version="1.0.0",
    docs_url=settings.docs_url,
    redoc_url=settings.redoc_url,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Routers
app.include_router(kv_router)


# Health & Root Endpoints
@app.get("/health", tags=["System"], summary="Health Check", response_model=HealthResponse)
def health_check(facade: KeyValueFacade = Depends(get_kv_facade)) -> HealthResponse:
    """Check if the API is running and the store answers PING."""
    logger.info("Health check requested")
    return HealthResponse(store="up" if facade.ping() else "down")


@app.get("/", tags=["Root"], summary="API Root")
async def root():
    """Welcome message and basic info."""
    return {"message": f"Welcome to {settings.app_name}"}
