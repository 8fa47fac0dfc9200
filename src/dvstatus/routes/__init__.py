"""Route modules for the gateway status API."""

from .status import router as status_router
from .system import router as system_router

__all__ = [
    'status_router',
    'system_router',
]
