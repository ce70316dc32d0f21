"""
Service for administrative route, allowed IP and rate limit mutations.

All writes to the administrative store go through here. Every mutation that
changes a route's allowlist re-derives ``with_ip_filter`` through
``derive_ip_filter`` so the flag always matches the collection.
"""
import logging
import re
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from gateway_admin.core.exceptions import (
    AllowedIpNotFound,
    DuplicateAllowedIp,
    DuplicateRoute,
    InvalidIpAddress,
    InvalidRateLimit,
    IpRouteMismatch,
    RouteNotFound,
)
from gateway_admin.models.allowed_ip import AllowedIp
from gateway_admin.models.gateway_route import GatewayRoute
from gateway_admin.models.rate_limit import RateLimit

logger = logging.getLogger(__name__)

# Applied when rate limiting is switched on without explicit values
DEFAULT_MAX_REQUESTS = 10
DEFAULT_TIME_WINDOW_MS = 60000

_IPV4_PATTERN = re.compile(r"(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})", re.ASCII)


def derive_ip_filter(ip_count: int) -> bool:
    """IP filtering is on exactly when the route has at least one allowed IP."""
    return ip_count > 0


def is_valid_ipv4(ip: Optional[str]) -> bool:
    """Check for a dotted-quad IPv4 address with every octet in [0, 255]."""
    if not ip:
        return False
    match = _IPV4_PATTERN.fullmatch(ip)
    if not match:
        return False
    return all(0 <= int(octet) <= 255 for octet in match.groups())


class RouteService:
    """Administrative operations on gateway routes and their children."""

    def __init__(self, db: Session):
        """
        Initialize route service.

        Args:
            db: Administrative store session
        """
        self.db = db

    # -- routes ---------------------------------------------------------

    def list_routes(self) -> List[GatewayRoute]:
        return (
            self.db.query(GatewayRoute)
            .options(selectinload(GatewayRoute.allowed_ips), selectinload(GatewayRoute.rate_limit))
            .order_by(GatewayRoute.id)
            .all()
        )

    def get_route(self, route_pk: int) -> GatewayRoute:
        route = self.db.query(GatewayRoute).filter(GatewayRoute.id == route_pk).first()
        if not route:
            raise RouteNotFound(route_pk)
        return route

    def create_route(
        self,
        route_id: str,
        uri: str,
        predicates: str,
        with_token: bool = False,
        with_rate_limit: bool = False,
        max_requests: Optional[int] = None,
        time_window_ms: Optional[int] = None,
        allowed_ips: Sequence[str] = (),
    ) -> GatewayRoute:
        """
        Create a route with optional rate limit policy and initial allowlist.

        Args:
            route_id: Human-readable route name (unique)
            uri: Upstream target
            predicates: Path pattern (unique)
            with_token: Enable token validation
            with_rate_limit: Enable rate limiting; a default policy is attached
                when no values are given
            max_requests: Rate limit request count
            time_window_ms: Rate limit window length
            allowed_ips: Initial IPv4 allowlist

        Returns:
            The created GatewayRoute
        """
        self._ensure_unique(route_id=route_id, predicates=predicates)

        for ip in allowed_ips:
            if not is_valid_ipv4(ip):
                raise InvalidIpAddress(ip)
        unique_ips = list(dict.fromkeys(allowed_ips))

        route = GatewayRoute(
            route_id=route_id,
            uri=uri,
            predicates=predicates,
            with_token=with_token,
            with_rate_limit=with_rate_limit,
        )
        route.allowed_ips = [AllowedIp(ip=ip) for ip in unique_ips]
        self._refresh_ip_filter(route)

        if max_requests is not None or time_window_ms is not None or with_rate_limit:
            route.rate_limit = self._build_rate_limit(max_requests, time_window_ms)

        self.db.add(route)
        self.db.commit()
        self.db.refresh(route)

        logger.info(f"Created route: id={route.id}, predicates={predicates}, ips={len(unique_ips)}")
        return route

    def update_route(
        self,
        route_pk: int,
        route_id: Optional[str] = None,
        uri: Optional[str] = None,
        predicates: Optional[str] = None,
        with_token: Optional[bool] = None,
        with_rate_limit: Optional[bool] = None,
        max_requests: Optional[int] = None,
        time_window_ms: Optional[int] = None,
    ) -> GatewayRoute:
        """
        Update route fields. ``with_ip_filter`` is not settable; it follows
        the allowlist.
        """
        route = self.get_route(route_pk)

        self._ensure_unique(
            route_id=route_id if route_id != route.route_id else None,
            predicates=predicates if predicates != route.predicates else None,
        )

        if route_id is not None:
            route.route_id = route_id
        if uri is not None:
            route.uri = uri
        if predicates is not None:
            route.predicates = predicates
        if with_token is not None:
            route.with_token = with_token
        if with_rate_limit is not None:
            route.with_rate_limit = with_rate_limit

        if max_requests is not None or time_window_ms is not None:
            self._apply_rate_limit(route, max_requests, time_window_ms)
        elif route.with_rate_limit and route.rate_limit is None:
            route.rate_limit = self._build_rate_limit(None, None)

        self.db.commit()
        self.db.refresh(route)

        logger.info(f"Updated route: id={route_pk}")
        return route

    def delete_route(self, route_pk: int) -> None:
        """Delete a route; its allowed IPs and rate limit go with it."""
        route = self.get_route(route_pk)
        self.db.delete(route)
        self.db.commit()
        logger.info(f"Deleted route: id={route_pk}")

    # -- rate limits ----------------------------------------------------

    def set_rate_limit(self, route_pk: int, max_requests: int, time_window_ms: int) -> RateLimit:
        """Create or replace the route's rate limit policy and enable rate limiting."""
        route = self.get_route(route_pk)
        self._apply_rate_limit(route, max_requests, time_window_ms)
        route.with_rate_limit = True
        self.db.commit()
        self.db.refresh(route)

        logger.info(
            f"Set rate limit for route {route_pk}: {max_requests} requests / {time_window_ms}ms"
        )
        return route.rate_limit

    def remove_rate_limit(self, route_pk: int) -> GatewayRoute:
        """Drop the route's policy and disable rate limiting."""
        route = self.get_route(route_pk)
        route.rate_limit = None
        route.with_rate_limit = False
        self.db.commit()
        self.db.refresh(route)

        logger.info(f"Removed rate limit for route {route_pk}")
        return route

    # -- allowed IPs ----------------------------------------------------

    def list_allowed_ips(self) -> List[AllowedIp]:
        return (
            self.db.query(AllowedIp)
            .options(selectinload(AllowedIp.gateway_route))
            .order_by(AllowedIp.id)
            .all()
        )

    def get_allowed_ip(self, ip_id: int) -> AllowedIp:
        entry = self.db.query(AllowedIp).filter(AllowedIp.id == ip_id).first()
        if not entry:
            raise AllowedIpNotFound(ip_id)
        return entry

    def add_allowed_ip(self, route_pk: int, ip: str) -> AllowedIp:
        """
        Add an IP to a route's allowlist.

        Raises:
            InvalidIpAddress: If ip is not a valid IPv4 address
            RouteNotFound: If the route does not exist
            DuplicateAllowedIp: If the route already allows this IP
        """
        if not is_valid_ipv4(ip):
            raise InvalidIpAddress(ip)

        route = self.get_route(route_pk)
        if any(existing.ip == ip for existing in route.allowed_ips):
            raise DuplicateAllowedIp(route_pk, ip)

        entry = AllowedIp(ip=ip)
        route.allowed_ips.append(entry)
        self._refresh_ip_filter(route)

        self.db.commit()
        self.db.refresh(entry)

        logger.info(f"Added IP {ip} to route {route_pk} (id={entry.id})")
        return entry

    def update_allowed_ip(self, ip_id: int, ip: str, route_pk: Optional[int] = None) -> AllowedIp:
        """
        Change an entry's address and optionally move it to another route.

        Moving removes the entry from the old route's allowlist and adds it to
        the new one; both routes' IP filter flags are re-derived.
        """
        if not is_valid_ipv4(ip):
            raise InvalidIpAddress(ip)

        entry = self.get_allowed_ip(ip_id)
        old_route = entry.gateway_route
        new_route = self.get_route(route_pk) if route_pk is not None else old_route

        if any(other.ip == ip and other.id != entry.id for other in new_route.allowed_ips):
            raise DuplicateAllowedIp(new_route.id, ip)

        entry.ip = ip
        if new_route.id != old_route.id:
            old_route.allowed_ips.remove(entry)
            new_route.allowed_ips.append(entry)
            self._refresh_ip_filter(old_route)
            logger.info(f"Moved IP id={ip_id} from route {old_route.id} to route {new_route.id}")
        self._refresh_ip_filter(new_route)

        self.db.commit()
        self.db.refresh(entry)

        logger.info(f"Updated IP id={ip_id} -> {ip}")
        return entry

    def delete_allowed_ip(self, ip_id: int, route_pk: int) -> GatewayRoute:
        """
        Remove one IP from a route.

        Raises:
            IpRouteMismatch: If the entry belongs to a different route
        """
        entry = self.get_allowed_ip(ip_id)
        if entry.gateway_route_id != route_pk:
            raise IpRouteMismatch(ip_id, route_pk)

        route = entry.gateway_route
        route.allowed_ips.remove(entry)
        self._refresh_ip_filter(route)

        self.db.commit()
        self.db.refresh(route)

        logger.info(f"Deleted IP id={ip_id} from route {route_pk}")
        return route

    def delete_all_allowed_ips(self, route_pk: int) -> int:
        """Clear a route's allowlist. Returns the number of entries removed."""
        route = self.get_route(route_pk)
        removed = len(route.allowed_ips)
        if removed == 0:
            return 0

        route.allowed_ips.clear()
        self._refresh_ip_filter(route)
        self.db.commit()

        logger.info(f"Deleted {removed} IPs from route {route_pk}")
        return removed

    # -- helpers --------------------------------------------------------

    @staticmethod
    def _refresh_ip_filter(route: GatewayRoute) -> None:
        route.with_ip_filter = derive_ip_filter(len(route.allowed_ips))

    def _ensure_unique(self, route_id: Optional[str] = None, predicates: Optional[str] = None) -> None:
        if route_id is not None:
            if self.db.query(GatewayRoute).filter(GatewayRoute.route_id == route_id).first():
                raise DuplicateRoute("route_id", route_id)
        if predicates is not None:
            if self.db.query(GatewayRoute).filter(GatewayRoute.predicates == predicates).first():
                raise DuplicateRoute("predicates", predicates)

    @staticmethod
    def _build_rate_limit(max_requests: Optional[int], time_window_ms: Optional[int]) -> RateLimit:
        max_requests = DEFAULT_MAX_REQUESTS if max_requests is None else max_requests
        time_window_ms = DEFAULT_TIME_WINDOW_MS if time_window_ms is None else time_window_ms
        if max_requests <= 0 or time_window_ms <= 0:
            raise InvalidRateLimit(max_requests, time_window_ms)
        return RateLimit(max_requests=max_requests, time_window_ms=time_window_ms)

    def _apply_rate_limit(
        self, route: GatewayRoute, max_requests: Optional[int], time_window_ms: Optional[int]
    ) -> None:
        if route.rate_limit is None:
            route.rate_limit = self._build_rate_limit(max_requests, time_window_ms)
            return

        new_max = route.rate_limit.max_requests if max_requests is None else max_requests
        new_window = route.rate_limit.time_window_ms if time_window_ms is None else time_window_ms
        if new_max <= 0 or new_window <= 0:
            raise InvalidRateLimit(new_max, new_window)
        route.rate_limit.max_requests = new_max
        route.rate_limit.time_window_ms = new_window
