"""
API v1 router.
"""
from fastapi import APIRouter

from gateway_admin.api.v1.endpoints import health, ip_addresses, routes, sync

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(routes.router, prefix="/routes", tags=["routes"])
api_router.include_router(ip_addresses.router, prefix="/ip-addresses", tags=["ip-addresses"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
