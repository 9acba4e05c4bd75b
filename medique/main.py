from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import time
import logging

from .api.v1 import admin, appointments, auth, doctors, payments, users
from .core.config import settings
from .core.database import init_db
from .core.exceptions import register_exception_handlers

API_PREFIX = "/api/v1"

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Doctor appointment booking: slot reservation, cancellation, payments and email notifications",
    openapi_url=f"{API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# TestClient talks to "testserver"; host checking stays off under TESTING
if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost"]
    )

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.4f}s")
    return response

register_exception_handlers(app)

for module in (auth, users, doctors, appointments, payments, admin):
    app.include_router(module.router, prefix=API_PREFIX)

@app.on_event("startup")
async def startup_event():
    """Create tables and report configuration gaps."""
    db_url = settings.get_database_url
    backend = "SQLite" if db_url.startswith("sqlite") else "PostgreSQL" if "postgresql" in db_url else "Unknown"
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION} on {backend}")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    if not settings.ADMIN_PASSWORD_HASH:
        logger.warning("ADMIN_PASSWORD_HASH not set, administrator login is disabled")
    if not settings.RAZORPAY_KEY_ID:
        logger.warning("RAZORPAY_KEY_ID not set, payment orders will fail")
    if not settings.SMTP_HOST:
        logger.warning("SMTP_HOST not set, email notifications are disabled")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")

@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": time.time(), "version": settings.VERSION}

@app.get("/")
async def root():
    return {
        "success": True,
        "message": f"{settings.APP_NAME} is running",
        "docs": "/docs",
        "health": "/health"
    }

@app.get(f"{API_PREFIX}/info")
async def api_info():
    """List the API's route groups."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            module.__name__.rsplit(".", 1)[-1]: f"{API_PREFIX}{module.router.prefix}"
            for module in (auth, users, doctors, appointments, payments, admin)
        }
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "medique.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
