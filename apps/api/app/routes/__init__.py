"""Route modules."""

from .root import router as root_router
from .users import router as users_router

__all__ = ["root_router", "users_router"]
