"""
API v1 Router

All API endpoints for clients.
"""

from fastapi import APIRouter

from dex_aggregator.api.v1.endpoints import tokens

router = APIRouter()

# Include all endpoint routers
router.include_router(tokens.router, prefix="/tokens", tags=["Tokens"])
