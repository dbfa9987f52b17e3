"""
StoreCore API v1.0.0
Features: Store Settings, RSVP bulk import (preview, edit, commit)
"""
from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Core imports
from core.config import settings
from core.database import close_db_connection, check_db_connection
from core.exceptions import StoreCoreException

# Store Settings Module
from store_settings_module import store_settings_router

# RSVP Import Module
from rsvp_import_module import rsvp_import_router

# ============== APP SETUP ==============
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version="1.0.0",
    description="Store reservation backend with RSVP bulk import"
)

api_router = APIRouter(prefix="/api")

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ============== EXCEPTION HANDLERS ==============
@app.exception_handler(StoreCoreException)
async def storecore_exception_handler(request: Request, exc: StoreCoreException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code, "success": False}
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred", "error_code": "INTERNAL_ERROR", "success": False}
    )


# ============== HEALTH CHECK ==============
@api_router.get("/", tags=["Health"])
async def root():
    return {"message": f"{settings.APP_NAME} API v1.0.0", "status": "running", "success": True}

@api_router.get("/health", tags=["Health"])
async def health_check():
    db_status = "connected" if await check_db_connection() else "disconnected"
    return {"status": "healthy" if db_status == "connected" else "degraded", "database": db_status, "version": "1.0.0"}


# ============== ROUTERS ==============
app.include_router(api_router)
app.include_router(store_settings_router, prefix="/api")
app.include_router(rsvp_import_router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=settings.CORS_ORIGINS.split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup():
    if await check_db_connection():
        logger.info(f"{settings.APP_NAME} started, database '{settings.DB_NAME}' reachable")
    else:
        logger.warning(f"{settings.APP_NAME} started without database connection")

@app.on_event("shutdown")
async def shutdown():
    await close_db_connection()
