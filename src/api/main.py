"""
FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config.settings import settings
from src.utils.logger import setup_logging, get_logger
from src.api.middleware import LoggingMiddleware
from src.api.error_handler import EXCEPTION_HANDLERS
from src.api.routers import acknowledgements, cases, lawyers, notices, sequences

setup_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Legal Collections Workflow API",
    description="Case, lawyer assignment, legal notice and acknowledgement workflow",
    version="0.1.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

for exception_class, handler in EXCEPTION_HANDLERS:
    app.add_exception_handler(exception_class, handler)


@app.on_event("startup")
async def startup_event():
    """Application startup"""
    logger.info("Application starting")
    
    from src.db.connection import db_manager
    if db_manager.health_check():
        logger.info("Database connection OK")
        if settings.environment == "development":
            db_manager.create_all()
    else:
        logger.warning("Database connection check failed")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown"""
    logger.info("Application shutting down")
    
    from src.db.connection import db_manager
    db_manager.close()


@app.get("/")
async def root():
    """Service info"""
    return {
        "message": "Legal Collections Workflow API",
        "version": "0.1.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check"""
    from src.db.connection import db_manager
    
    db_healthy = db_manager.health_check()
    
    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "database": "healthy" if db_healthy else "unhealthy"
    }


app.include_router(lawyers.router)
app.include_router(cases.router)
app.include_router(notices.router)
app.include_router(acknowledgements.router)
app.include_router(sequences.router)
