import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import dashboard, demo, grid, ocr, products, receipts, vendors
from .services.cache import close_redis

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    if not settings.redis_url:
        logger.info("REDIS_URL is not set; read caching is off")
    yield
    await close_redis()


# Create FastAPI app
app = FastAPI(
    title="Receipt Desk API",
    description="Backend API for capturing, reconciling and verifying purchase receipts",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ocr.router)
app.include_router(receipts.router)
app.include_router(vendors.router)
app.include_router(products.router)
app.include_router(grid.router)
app.include_router(dashboard.router)
app.include_router(demo.router)

if not settings.store_configured:
    logger.warning("Supabase is not configured; store operations will fail")


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "receipt-desk-api"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Receipt Desk API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "extractor": settings.extractor,
    }
