"""
Main FastAPI application for the EventEye certificate service
"""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import time

from eventeye import __version__
from eventeye.config import settings
from eventeye.api import auth, certificates, events, integrity, system, verify
from eventeye.dependencies import get_store
from eventeye.errors import EventEyeError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting EventEye certificate service...")
    if settings.STORE_BACKEND.lower() == "sql":
        from eventeye.db.database import init_db

        init_db()
        logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down EventEye certificate service...")
    get_store().close()
    if settings.STORE_BACKEND.lower() == "sql":
        from eventeye.db.database import close_db

        close_db()


app = FastAPI(
    title="EventEye Certificates",
    description="Issues verifiable certificates for event participants and verifies them by code",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Log each request and add its processing time to the response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} {response.status_code} {process_time * 1000:.1f}ms")
    return response


@app.exception_handler(EventEyeError)
async def eventeye_exception_handler(request: Request, exc: EventEyeError):
    """Render service errors with their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or incomplete request bodies are client errors (400)."""
    return JSONResponse(
        status_code=400,
        content={"error": "Missing required fields", "detail": jsonable_encoder(exc.errors())}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.APP_DEBUG else "An unexpected error occurred"
        }
    )


# Include routers
app.include_router(system.router, tags=["System"])
app.include_router(auth.router, tags=["Auth"])
app.include_router(events.router, tags=["Events"])
app.include_router(certificates.router, tags=["Certificates"])
app.include_router(verify.router, tags=["Verification"])
app.include_router(integrity.router, prefix="/integrity", tags=["Integrity"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "EventEye Certificates",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


# Ready endpoint for k8s probes
@app.get("/ready", tags=["Health"])
async def ready():
    """Readiness probe endpoint."""
    return {"status": "ready"}


# Live endpoint for k8s probes
@app.get("/live", tags=["Health"])
async def live():
    """Liveness probe endpoint."""
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "eventeye.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.APP_DEBUG
    )
