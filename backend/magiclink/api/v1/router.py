"""API v1 router aggregator.

All v1 endpoint routers are included here and mounted under /api/v1.
"""

from fastapi import APIRouter

from magiclink.api.v1 import settings, token_exchange

router = APIRouter()

# =============================================================================
# Passwordless sign-in
# =============================================================================

router.include_router(token_exchange.router, tags=["auth"])

# =============================================================================
# Admin
# =============================================================================

router.include_router(settings.router, prefix="/admin", tags=["admin"])
