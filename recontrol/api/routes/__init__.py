from __future__ import annotations

from recontrol.api.routes.admin import router as admin_router
from recontrol.api.routes.health import router as health_router
from recontrol.api.routes.sense import router as sense_router

__all__ = ["admin_router", "health_router", "sense_router"]
