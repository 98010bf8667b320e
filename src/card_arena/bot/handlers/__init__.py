"""Bot handlers module."""

from .admin import router as admin_router
from .arena import router as arena_router
from .characters import router as characters_router

__all__ = ["admin_router", "arena_router", "characters_router"]
