from fastapi import APIRouter, Depends

from api.v1.routes import (
    health,
)
from common.core.security import require_admin_api_key
from packages.billing.routes import jobs, payments, plans, subscriptions

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Gateway callbacks (no auth - signature verified internally)
api_router.include_router(payments.router, prefix="/billing/payments", tags=["payments"])

# Plans (no auth - public pricing info)
api_router.include_router(plans.router, prefix="/billing/plans", tags=["billing"])

# Operator routes (require admin API key)
api_router.include_router(
    jobs.router,
    prefix="/billing/jobs",
    tags=["jobs"],
    dependencies=[Depends(require_admin_api_key)],
)
api_router.include_router(
    subscriptions.router,
    prefix="/billing/subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(require_admin_api_key)],
)
