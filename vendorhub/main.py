"""
FastAPI Application — entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vendorhub.database import init_db, close_db
from vendorhub.errors import setup_exception_handlers
from vendorhub.routes import router, VERSION
from vendorhub.routes.activity import activity_router
from vendorhub.routes.contracts import router as contract_router, document_router
from vendorhub.routes.dashboard import router as dashboard_router
from vendorhub.routes.profiles import router as profile_router
from vendorhub.routes.vendors import router as vendor_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hook."""
    logger.info("🚀 Starting VendorHub API v%s", VERSION)
    await init_db()
    logger.info("✅ Database ready")

    yield

    await close_db()
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="VendorHub API",
    description=(
        "Vendor, contract and document management with an append-only "
        "activity log, a recent-activity feed and dashboard rollups."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

app.include_router(router, prefix="/api/v1")
app.include_router(vendor_router, prefix="/api/v1")
app.include_router(contract_router, prefix="/api/v1")
app.include_router(document_router, prefix="/api/v1")
app.include_router(profile_router, prefix="/api/v1")
app.include_router(activity_router, prefix="/api/v1")
app.include_router(dashboard_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "VendorHub API",
        "version": VERSION,
        "docs": "/docs",
    }
