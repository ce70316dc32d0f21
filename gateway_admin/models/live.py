"""
Live store models read by the traffic router.

These mirror the administrative tables column for column and are keyed by the
same ids. Unlike the admin models they carry no ORM relationships or cascades:
the child tables hold plain foreign keys to ``gateway_routes.id``, so the
replication engine must delete children before parents and insert parents
before children.
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey

from gateway_admin.core.database import LiveBase


class LiveGatewayRoute(LiveBase):
    __tablename__ = "gateway_routes"

    id = Column(Integer, primary_key=True, autoincrement=False)
    uri = Column(String(500), nullable=False)
    route_id = Column(String(255), nullable=False)
    predicates = Column(String(500), nullable=False)
    with_ip_filter = Column(Boolean, nullable=False)
    with_token = Column(Boolean, nullable=False)
    with_rate_limit = Column(Boolean, nullable=False)


class LiveRateLimit(LiveBase):
    __tablename__ = "rate_limit"

    id = Column(Integer, primary_key=True, autoincrement=False)
    route_id = Column(Integer, ForeignKey("gateway_routes.id"), nullable=False, unique=True)
    max_requests = Column(Integer, nullable=False)
    time_window_ms = Column(Integer, nullable=False)


class LiveAllowedIp(LiveBase):
    __tablename__ = "allowed_ips"

    id = Column(Integer, primary_key=True, autoincrement=False)
    gateway_route_id = Column(Integer, ForeignKey("gateway_routes.id"), nullable=False, index=True)
    ip = Column(String(15), nullable=False)


# Clear order: deepest-referencing tables first
LIVE_TABLES_CLEAR_ORDER = (LiveAllowedIp, LiveRateLimit, LiveGatewayRoute)
