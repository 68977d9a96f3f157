from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import LoginController
from .auth_backends import get_auth_backend
from .logging_setup import setup_logging
from .ratelimit import AttemptTracker, Cooldown
from .routers import actions as actions_router
from .routers import auth as auth_router
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .store import TodoStore, initial_state

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Task collection, filter/sort/theme preferences and the projected task list.",
    },
    {"name": "actions", "description": "Raw store actions."},
    {"name": "auth", "description": "Login form state and sign-in / sign-up submission."},
]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application: one store and one login controller per app
    instance, both reachable from request handlers through app.state.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="TaskFlow",
        description="Todo list state store with filter/sort projection and a guarded login flow.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.store = TodoStore(initial_state(prefers_dark=settings.prefers_dark))
    app.state.login = LoginController(
        get_auth_backend(settings),
        tracker=AttemptTracker(settings.auth_max_attempts, settings.auth_window_seconds),
        cooldown=Cooldown(settings.auth_cooldown_seconds),
    )

    # Configure CORS based on settings (CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "auth_backend": settings.auth_backend}

    app.include_router(todos_router.router)
    app.include_router(actions_router.router)
    app.include_router(auth_router.router)

    logger.info("TaskFlow app created (auth backend: %s)", settings.auth_backend)
    return app
