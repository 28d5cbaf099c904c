"""
FastAPI application factory and entry point.

  1. Lifespan — resolves the encryption key (fail closed), creates tables
  2. CORS middleware
  3. Exception handlers — domain errors to JSON responses
  4. Routers — /auth and /payment-methods

Running locally:
    uvicorn cardvault.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardvault import models  # noqa: F401  (registers every table on Base.metadata)
from cardvault.config import settings
from cardvault.crypto import get_encryption_key
from cardvault.database import engine, Base
from cardvault.exceptions import ConfigurationError, register_exception_handlers
from cardvault.logging_config import configure_logging
from cardvault.routers import auth, payment_methods
from cardvault.security_events import SecurityEventType, Severity, log_security_event

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Resolve ENCRYPTION_KEY. A missing or malformed key aborts startup;
      there is no degraded mode without encryption. Then create tables
      (development convenience; production uses migrations).

    Shutdown:
      Dispose of the database engine.
    """
    try:
        get_encryption_key()
    except ConfigurationError as exc:
        log_security_event(
            SecurityEventType.CONFIGURATION_ERROR,
            severity=Severity.CRITICAL,
            details={"reason": exc.detail},
        )
        raise

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Saved payment methods with AES-256-GCM card data protection at rest",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(payment_methods.router, prefix="/payment-methods", tags=["Payment Methods"])


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
