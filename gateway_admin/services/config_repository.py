"""
Read path used as the replication source.

Assembles one (route, allowed IPs, rate limit) aggregate per route from a
single outer-joined query, instead of walking the ORM relationships lazily.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gateway_admin.core.exceptions import SourceUnavailable
from gateway_admin.models.allowed_ip import AllowedIp
from gateway_admin.models.gateway_route import GatewayRoute
from gateway_admin.models.rate_limit import RateLimit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteRecord:
    id: int
    route_id: str
    uri: str
    predicates: str
    with_ip_filter: bool
    with_token: bool
    with_rate_limit: bool


@dataclass(frozen=True)
class AllowedIpRecord:
    id: int
    ip: str


@dataclass(frozen=True)
class RateLimitRecord:
    id: int
    max_requests: int
    time_window_ms: int


@dataclass(frozen=True)
class RouteAggregate:
    """A route with its full allowlist and optional rate limit policy."""
    route: RouteRecord
    allowed_ips: Tuple[AllowedIpRecord, ...] = ()
    rate_limit: Optional[RateLimitRecord] = None


class ConfigurationRepository:
    """Reads a consistent snapshot of the administrative store."""

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new administrative store session
        """
        self.session_factory = session_factory

    def snapshot(self) -> List[RouteAggregate]:
        """
        Return every committed route with its IPs and rate limit.

        Routes are ordered by id and each route's IPs by id, so repeated
        snapshots of unchanged data are identical.

        Raises:
            SourceUnavailable: If the store cannot be read. No partial
                snapshot is ever returned.
        """
        try:
            db = self.session_factory()
        except SQLAlchemyError as e:
            raise SourceUnavailable(f"Cannot open administrative store session: {e}") from e

        # A single statement sees one read point on every backend
        stmt = (
            select(
                GatewayRoute.id,
                GatewayRoute.route_id,
                GatewayRoute.uri,
                GatewayRoute.predicates,
                GatewayRoute.with_ip_filter,
                GatewayRoute.with_token,
                GatewayRoute.with_rate_limit,
                RateLimit.id.label("rate_limit_id"),
                RateLimit.max_requests,
                RateLimit.time_window_ms,
                AllowedIp.id.label("allowed_ip_id"),
                AllowedIp.ip,
            )
            .outerjoin(RateLimit, RateLimit.route_id == GatewayRoute.id)
            .outerjoin(AllowedIp, AllowedIp.gateway_route_id == GatewayRoute.id)
            .order_by(GatewayRoute.id, AllowedIp.id)
        )

        try:
            rows = db.execute(stmt).all()
            aggregates = self._assemble(rows)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read configuration snapshot: {e}", exc_info=True)
            raise SourceUnavailable(f"Administrative store unavailable: {e}") from e
        finally:
            db.close()

        logger.debug(f"Read snapshot of {len(aggregates)} routes")
        return aggregates

    @staticmethod
    def _assemble(rows) -> List[RouteAggregate]:
        """Fold the joined rows (one per route x allowed IP) into aggregates."""
        routes: Dict[int, RouteRecord] = {}
        rate_limits: Dict[int, RateLimitRecord] = {}
        ips_by_route: Dict[int, List[AllowedIpRecord]] = defaultdict(list)

        for row in rows:
            if row.id not in routes:
                routes[row.id] = RouteRecord(
                    id=row.id,
                    route_id=row.route_id,
                    uri=row.uri,
                    predicates=row.predicates,
                    with_ip_filter=bool(row.with_ip_filter),
                    with_token=bool(row.with_token),
                    with_rate_limit=bool(row.with_rate_limit),
                )
                if row.rate_limit_id is not None:
                    rate_limits[row.id] = RateLimitRecord(
                        id=row.rate_limit_id,
                        max_requests=row.max_requests,
                        time_window_ms=row.time_window_ms,
                    )
            if row.allowed_ip_id is not None:
                ips_by_route[row.id].append(AllowedIpRecord(id=row.allowed_ip_id, ip=row.ip))

        return [
            RouteAggregate(
                route=route,
                allowed_ips=tuple(ips_by_route.get(route_pk, ())),
                rate_limit=rate_limits.get(route_pk),
            )
            for route_pk, route in routes.items()
        ]
