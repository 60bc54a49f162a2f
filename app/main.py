# app/main.py

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import db
from app.core.cache import cache

from app.dependencies.session import session_gateway

# Routers
from app.modules.auth.router import router as auth_router
from app.modules.users.router import router as users_router
from app.modules.audit.router import router as audit_router

logger = logging.getLogger("uvicorn")
logging.getLogger("app").setLevel(settings.LOG_LEVEL.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup/shutdown lifecycle.
    - Connect DB pool and ensure the users table
    - Connect the session cache
    """
    logger.info("Starting %s...", settings.APP_NAME)
    await db.connect()
    await db.init_schema()
    await cache.connect()
    logger.info("Database and cache connections established.")
    yield
    logger.info("Shutting down %s...", settings.APP_NAME)
    await db.disconnect()
    await cache.close()
    logger.info("Database and cache connections closed.")


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS (tighten allow_origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session cookie / bearer -> request.state.principal
app.middleware("http")(session_gateway)


# -------------------------------------------------------------------
# HEALTH CHECK
# -------------------------------------------------------------------
@app.get("/health", tags=["System"])
async def health_check():
    """
    Runtime liveness probe used by infra / load balancers.
    Verifies DB and the session cache.
    """
    db_health = await db.ping()
    cache_health = await cache.ping()

    status_code = 200 if (db_health and cache_health) else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok" if status_code == 200 else "unhealthy",
            "components": {
                "database": "connected" if db_health else "disconnected",
                "redis": "connected" if cache_health else "disconnected",
            },
        },
    )


# -------------------------------------------------------------------
# API ROUTERS
# -------------------------------------------------------------------
API_PREFIX = "/api"

# Each router has its own internal prefix: "/auth", "/customer", "/audit"
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(audit_router, prefix=API_PREFIX)
