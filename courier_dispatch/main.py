# courier_dispatch/main.py
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from courier_dispatch.config.settings import settings
from courier_dispatch.config.database import init_database
from courier_dispatch.core.middleware import setup_middleware, setup_exception_handlers
from courier_dispatch.api.v1.router import api_router
from courier_dispatch.shared.services.geocoder import close_geocoder

logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"{settings.app_name} starting (version {settings.version})")
    logger.info(f"Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else settings.database_url}")
    init_database()

    yield

    # Shutdown
    logger.info(f"{settings.app_name} shutting down")
    await close_geocoder()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Courier dispatch: radius matching and delivery lifecycle",
    docs_url="/docs",
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Setup middleware
setup_middleware(app)
setup_exception_handlers(app)

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "message": "Courier Dispatch API",
        "version": settings.version,
        "status": "running",
        "environment": "production" if not settings.debug else "development",
        "docs": "/docs",
        "api": "/api/v1"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.version,
        "app": settings.app_name,
        "environment": "production" if not settings.debug else "development"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "courier_dispatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
