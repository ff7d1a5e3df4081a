# backend/travel_itinerary/server.py

import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from travel_itinerary.api.routes_auth import router as auth_router
from travel_itinerary.api.routes_health import router as health_router
from travel_itinerary.api.routes_itinerary import router as itinerary_router
from travel_itinerary.core.context import AppContext
from travel_itinerary.core.errors import AppError
from travel_itinerary.core.logger import get_logger
from travel_itinerary.core.rate_limit import RateLimitMiddleware
from travel_itinerary.db import mongo
from travel_itinerary.graphql.schema import build_graphql_router

logger = get_logger("server")


def _first_validation_error(exc: RequestValidationError) -> dict:
    errors = exc.errors()
    if not errors:
        return {"message": "Invalid request", "code": "VALIDATION_ERROR"}
    first = errors[0]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    body = {"message": first.get("msg", "Invalid request"), "code": "VALIDATION_ERROR"}
    if loc:
        body["field"] = ".".join(loc)
    return body


def create_app(ctx: Optional[AppContext] = None) -> FastAPI:
    """Build the FastAPI application over ``ctx`` (connected from settings when omitted)."""
    if ctx is None:
        ctx = AppContext.from_settings()
    settings = ctx.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting itinerary service (env=%s, cache=%s)", settings.environment, ctx.cache.backend_name)
        mongo.ensure_indexes(ctx.db)
        yield
        logger.info("Shutting down itinerary service")
        ctx.close()

    app = FastAPI(
        title="TMTC Itinerary API",
        description="Travel itinerary CRUD over REST and GraphQL",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    # -------------------------------------------------------------
    # MIDDLEWARE
    # -------------------------------------------------------------
    app.add_middleware(
        RateLimitMiddleware,
        cache=ctx.cache_backend,
        limit=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------
    # ERROR HANDLERS
    # -------------------------------------------------------------
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=_first_validation_error(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method, request.url.path, exc, traceback.format_exc(),
        )
        content = {"message": "Server error"}
        if not settings.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    # -------------------------------------------------------------
    # ROUTES
    # -------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(itinerary_router)
    app.include_router(health_router)
    app.include_router(build_graphql_router(graphiql=not settings.is_production), prefix="/graphql")

    @app.get("/")
    def root():
        return {
            "status": "ok",
            "message": "TMTC itinerary API is running",
            "env": settings.environment,
        }

    return app
