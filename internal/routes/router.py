"""Root-level routes that bypass /api/v1.

Only liveness and readiness probes live here. Readiness depends on the
jobs manager wired by the application lifespan.
"""

from fastapi import APIRouter

from internal.routes import probes

internal_router = APIRouter()
internal_router.include_router(probes.router)
