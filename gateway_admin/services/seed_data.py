"""
Service for seeding sample gateway routes into an empty administrative store.
"""
import logging

from sqlalchemy.orm import Session

from gateway_admin.models.gateway_route import GatewayRoute
from gateway_admin.services.route_service import RouteService

logger = logging.getLogger(__name__)

SAMPLE_ROUTES = [
    {
        "route_id": "final-server1-secure-route",
        "uri": "http://localhost:8050",
        "predicates": "/server-final/**",
        "with_token": False,
        "with_rate_limit": False,
        "max_requests": 100,
        "time_window_ms": 60000,
        "allowed_ips": [],
    },
    {
        "route_id": "final-server2-secure-route",
        "uri": "http://localhost:8060",
        "predicates": "/server-final2/**",
        "with_token": False,
        "with_rate_limit": True,
        "max_requests": 10,
        "time_window_ms": 60000,
        "allowed_ips": ["127.0.0.1"],
    },
]


def seed_sample_routes(db: Session) -> int:
    """
    Create the sample routes if the store has no routes yet.

    Returns:
        Number of routes created (0 when data already exists)
    """
    existing = db.query(GatewayRoute).count()
    if existing:
        logger.info(f"Data already exists ({existing} routes). Skipping sample data.")
        return 0

    logger.info("No existing routes found. Creating sample routes...")
    service = RouteService(db)
    for route_data in SAMPLE_ROUTES:
        route = service.create_route(**route_data)
        logger.info(f"Sample route created: {route.predicates} -> {route.uri}")

    return len(SAMPLE_ROUTES)
