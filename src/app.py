"""Restaurant push notifications FastAPI application.

Processes commands synchronously via HTTP and awaits push delivery inline.
Every request under a domain route is wrapped in the notifications domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from notifications.api import push_token_router, router
from notifications.config import PushConfig
from notifications.domain import notifications
from notifications.service import PushNotificationService, build_push_service
from protean.integrations.fastapi import register_exception_handlers

notifications.init()

_DOMAIN_ROUTES = ("/notifications", "/push-tokens")


def create_app(
    config: PushConfig | None = None,
    service: PushNotificationService | None = None,
) -> FastAPI:
    """Build the API around a push service.

    Without ``service``, one is built from ``config`` (or the environment)
    that delivers through the Expo gateway and reads the DeviceToken store.
    """
    if service is None:
        service = build_push_service(config or PushConfig.from_env())

    app = FastAPI(
        title="Restaurant Push Notifications API",
        description="Admin broadcasts and device token registration",
    )
    app.state.push_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the notifications domain context for domain routes."""
        if request.url.path.startswith(_DOMAIN_ROUTES):
            with notifications.domain_context():
                response = await call_next(request)
            return response
        # Health check, docs
        return await call_next(request)

    register_exception_handlers(app)

    app.include_router(router)
    app.include_router(push_token_router)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": notifications.name,
            }
        )

    return app


app = create_app()
