"""Database models."""
from gateway_admin.models.gateway_route import GatewayRoute
from gateway_admin.models.allowed_ip import AllowedIp
from gateway_admin.models.rate_limit import RateLimit
from gateway_admin.models.live import LiveGatewayRoute, LiveRateLimit, LiveAllowedIp

__all__ = [
    "GatewayRoute",
    "AllowedIp",
    "RateLimit",
    "LiveGatewayRoute",
    "LiveRateLimit",
    "LiveAllowedIp",
]
