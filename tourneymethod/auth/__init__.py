"""Admin authentication package: osu! OAuth login, allow-list and sessions."""

from .deps import AdminLoginRequired, require_admin
from .flow import AuthFlowController, get_auth_flow
from .routes import router as auth_router

__all__ = [
    "AdminLoginRequired",
    "AuthFlowController",
    "auth_router",
    "get_auth_flow",
    "require_admin",
]
