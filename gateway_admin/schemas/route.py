"""Schemas for gateway route management."""
from typing import List, Optional

from pydantic import BaseModel, Field

from gateway_admin.schemas.sync import SyncReportResponse


class RateLimitRequest(BaseModel):
    """Request schema for setting a route's rate limit."""
    max_requests: int = Field(..., gt=0, description="Maximum requests per window")
    time_window_ms: int = Field(..., gt=0, description="Window length in milliseconds")


class RateLimitResponse(BaseModel):
    id: int
    route_id: int
    max_requests: int
    time_window_ms: int

    model_config = {"from_attributes": True}


class AllowedIpSummary(BaseModel):
    id: int
    ip: str

    model_config = {"from_attributes": True}


class RouteCreateRequest(BaseModel):
    """Request schema for creating a route. IP filtering follows ``allowed_ips``."""
    route_id: str = Field(..., min_length=1, max_length=255, description="Human-readable route name")
    uri: str = Field(..., min_length=1, max_length=500, description="Upstream URI")
    predicates: str = Field(..., min_length=1, max_length=500, description="Path pattern, e.g. /service/**")
    with_token: bool = False
    with_rate_limit: bool = False
    rate_limit: Optional[RateLimitRequest] = None
    allowed_ips: List[str] = Field(default_factory=list, description="Initial IPv4 allowlist")


class RouteUpdateRequest(BaseModel):
    """Request schema for updating a route."""
    route_id: Optional[str] = Field(None, min_length=1, max_length=255)
    uri: Optional[str] = Field(None, min_length=1, max_length=500)
    predicates: Optional[str] = Field(None, min_length=1, max_length=500)
    with_token: Optional[bool] = None
    with_rate_limit: Optional[bool] = None
    rate_limit: Optional[RateLimitRequest] = None


class RouteResponse(BaseModel):
    """Response schema for a route with its allowlist and rate limit."""
    id: int
    route_id: str
    uri: str
    predicates: str
    with_ip_filter: bool
    with_token: bool
    with_rate_limit: bool
    allowed_ips: List[AllowedIpSummary] = []
    rate_limit: Optional[RateLimitResponse] = None

    model_config = {"from_attributes": True}


class RouteMutationResponse(RouteResponse):
    """Route response carrying the outcome of the sync the mutation triggered."""
    sync: Optional[SyncReportResponse] = None


class RouteListResponse(BaseModel):
    items: List[RouteResponse]
    total: int
