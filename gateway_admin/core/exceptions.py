"""
Domain exceptions.

Two families live here: admin mutation errors, which the HTTP layer translates
into 4xx responses, and sync errors, which the replication engine classifies
into a run report and never lets escape to the host process.
"""
from typing import Optional


class GatewayAdminError(Exception):
    """Base class for admin mutation errors."""


class RouteNotFound(GatewayAdminError):
    def __init__(self, route_id: int):
        self.route_id = route_id
        super().__init__(f"Gateway route not found with id {route_id}")


class AllowedIpNotFound(GatewayAdminError):
    def __init__(self, ip_id: int):
        self.ip_id = ip_id
        super().__init__(f"Allowed IP not found with id {ip_id}")


class InvalidIpAddress(GatewayAdminError):
    def __init__(self, ip: Optional[str]):
        self.ip = ip
        super().__init__(f"Invalid IP address format: {ip!r}. Please use IPv4 format (e.g., 192.168.1.1)")


class DuplicateAllowedIp(GatewayAdminError):
    def __init__(self, route_id: int, ip: str):
        self.route_id = route_id
        self.ip = ip
        super().__init__(f"IP {ip} is already assigned to route {route_id}")


class DuplicateRoute(GatewayAdminError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A route with {field} '{value}' already exists")


class IpRouteMismatch(GatewayAdminError):
    def __init__(self, ip_id: int, route_id: int):
        self.ip_id = ip_id
        self.route_id = route_id
        super().__init__(f"IP address with id {ip_id} does not belong to gateway route with id {route_id}")


class InvalidRateLimit(GatewayAdminError):
    def __init__(self, max_requests: int, time_window_ms: int):
        self.max_requests = max_requests
        self.time_window_ms = time_window_ms
        super().__init__(
            f"Rate limit values must be positive (max_requests={max_requests}, time_window_ms={time_window_ms})"
        )


class SyncError(Exception):
    """Base class for replication failures."""

    phase: str = "unknown"


class SourceUnavailable(SyncError):
    """The administrative store could not be read."""

    phase = "read"


class ClearFailed(SyncError):
    """A live store table could not be cleared."""

    phase = "clear"

    def __init__(self, table: str, cause: Optional[BaseException] = None):
        self.table = table
        self.cause = cause
        super().__init__(f"Failed to clear {table}: {cause}")


class RowInsertFailed(SyncError):
    """One route (or one of its child rows) could not be written to the live store."""

    phase = "repopulate"

    def __init__(self, route_id: int, cause: Optional[BaseException] = None):
        self.route_id = route_id
        self.cause = cause
        super().__init__(f"Failed to replicate route {route_id}: {cause}")
