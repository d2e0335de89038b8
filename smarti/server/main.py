"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request logging), registers the exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smarti import __version__
from smarti.core.database.session import init_db
from smarti.core.logging_config import get_logger, setup_logging
from smarti.core.monitoring import initialize_logfire

from .api.v1 import (
    admin,
    bi,
    content_import,
    health,
    learn,
    me,
    organization_analytics,
    payments,
    public,
    system_step,
    user_coupon,
)
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import LogfireMiddleware

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates missing tables on startup. A database failure is logged and the
    server keeps starting so health checks still answer.
    """
    try:
        logger.info("Starting up Smarti Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down Smarti Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Smarti Server API

    Backend of the Smarti learning app: lessons and quizzes, rankings, coupons,
    subscriptions and payments, organization analytics, the BI dashboard and
    the admin panel's CRUD endpoints.
    """,
    version=__version__,
    openapi_url=f"{constant.API_PREFIX}/openapi.json",
    docs_url=f"{constant.API_PREFIX}/docs",
    redoc_url=f"{constant.API_PREFIX}/redoc",
    lifespan=lifespan,
)

initialize_logfire(app)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
    expose_headers=["X-Total-Count", "Content-Range", "X-Process-Time"],
)
app.add_middleware(LogfireMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(system_step.router, prefix=f"{constant.API_PREFIX}/system-step", tags=["system-step"])
app.include_router(user_coupon.router, prefix=f"{constant.API_PREFIX}/user-coupon", tags=["coupons"])
app.include_router(learn.router, prefix=f"{constant.API_PREFIX}/learn", tags=["learn"])
app.include_router(
    organization_analytics.router,
    prefix=f"{constant.API_PREFIX}/organization-analytics",
    tags=["organization-analytics"],
)
app.include_router(bi.router, prefix=f"{constant.API_PREFIX}/bi", tags=["bi"])
app.include_router(payments.router, prefix=constant.API_PREFIX, tags=["payments"])
app.include_router(public.router, prefix=constant.API_PREFIX, tags=["public"])
# Fixed paths such as /api/subscriptions/me must be matched before /api/{resource}/{id}.
app.include_router(me.router, prefix=constant.API_PREFIX, tags=["me"])
app.include_router(content_import.router, prefix=constant.API_PREFIX, tags=["admin-import"])
app.include_router(admin.router, prefix=constant.API_PREFIX)
