"""API routes."""

from payroll_core.api.routes.gl import router as gl_router
from payroll_core.api.routes.health import router as health_router
from payroll_core.api.routes.simulations import router as simulations_router

__all__ = ["gl_router", "health_router", "simulations_router"]
