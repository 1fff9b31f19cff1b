from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from catalog.config import get_settings
from catalog.database import init_db
from catalog.routers.products import router as products_router
from catalog.routers.filters import router as filters_router
from catalog.services.cache import cache

settings = get_settings()

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and cache on startup."""
    print("Starting up... Initializing database")
    init_db()
    print("Connecting to Redis cache...")
    await cache.connect()
    yield
    print("Shutting down...")
    await cache.disconnect()


app = FastAPI(
    title="Product Catalog API",
    description="Browse, filter and manage storefront products",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(products_router, prefix=settings.api_prefix)
app.include_router(filters_router, prefix=settings.api_prefix)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Product Catalog API",
        "version": "1.0.0",
        "cache": cache.is_connected,
    }
