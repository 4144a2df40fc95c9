"""Version 1 API routers."""

from .intel import router as intel_router

__all__ = ["intel_router"]
