from notifications.api.routes import push_token_router, router

__all__ = ["router", "push_token_router"]
