"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .config import settings
from .database import Base, SessionLocal, engine, get_db
# Import all models here so create_all sees every table
from .auth import models as auth_models  # noqa: F401
from .patients import models as patient_models  # noqa: F401
from .doctors import models as doctor_models  # noqa: F401
from .staff import models as staff_models  # noqa: F401
from .core import audit_models  # noqa: F401
from .auth.router import router as auth_router, admin_router as verification_review_router
from .verification.router import router as verification_router, registry_router
from .exceptions import register_exception_handlers
from .core.middleware import setup_middlewares
from .core.bootstrap import bootstrap_admin_if_needed

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

def init_db() -> None:
    """Create missing tables and the bootstrap admin."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        bootstrap_admin_if_needed(db)
    except SQLAlchemyError as e:
        logger.error(f"❌ Bootstrap process failed: {str(e)}")
    finally:
        db.close()

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting HealthVault Auth API...")
    init_db()
    yield
    logger.info("HealthVault Auth API stopped")

# Create FastAPI application
app = FastAPI(
    title="HealthVault Auth API",
    description="Authentication and professional identity verification for patients, doctors and staff",
    version=__version__,
    lifespan=lifespan
)

# Register exception handlers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware
setup_middlewares(app)

# Include routers
app.include_router(auth_router)
app.include_router(verification_router)
app.include_router(verification_review_router)
app.include_router(registry_router)

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API version
    """
    return {"message": "Welcome to HealthVault Auth API", "version": __version__}

# Health check endpoint
@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Health status, 503 when the identity store does not answer
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unavailable"})
    return {"status": "healthy", "database": "connected"}
