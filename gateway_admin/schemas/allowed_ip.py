"""Schemas for allowed IP management."""
from typing import Optional

from pydantic import BaseModel, Field

from gateway_admin.models.allowed_ip import AllowedIp
from gateway_admin.schemas.sync import SyncReportResponse


class AllowedIpCreateRequest(BaseModel):
    ip: str = Field(..., description="IPv4 address, e.g. 192.168.1.1")
    gateway_route_id: int = Field(..., description="Route the IP is allowed on")


class AllowedIpUpdateRequest(BaseModel):
    ip: str = Field(..., description="New IPv4 address")
    gateway_route_id: Optional[int] = Field(None, description="Move the entry to this route")


class AllowedIpResponse(BaseModel):
    """Allowed IP with the details of its route."""
    id: int
    ip: str
    gateway_route_id: int
    predicate: Optional[str] = None
    route_uri: Optional[str] = None
    route_name: Optional[str] = None
    with_ip_filter: Optional[bool] = None

    @classmethod
    def from_entry(cls, entry: AllowedIp) -> "AllowedIpResponse":
        route = entry.gateway_route
        return cls(
            id=entry.id,
            ip=entry.ip,
            gateway_route_id=entry.gateway_route_id,
            predicate=route.predicates if route else None,
            route_uri=route.uri if route else None,
            route_name=route.route_id if route else None,
            with_ip_filter=route.with_ip_filter if route else None,
        )


class AllowedIpMutationResponse(AllowedIpResponse):
    sync: Optional[SyncReportResponse] = None


class RouteSelectionItem(BaseModel):
    """Route summary for IP management screens."""
    id: int
    predicate: str
    route_id: str
    uri: str
    with_ip_filter: bool
    ip_count: int
