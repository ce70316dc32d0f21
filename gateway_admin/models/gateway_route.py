"""Gateway route database model (administrative store)."""
from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from gateway_admin.core.database import Base


class GatewayRoute(Base):
    """A route mapping a path predicate to an upstream URI."""
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(String(255), nullable=False, unique=True, index=True)  # Human-readable name
    uri = Column(String(500), nullable=False)
    predicates = Column(String(500), nullable=False, unique=True, index=True)

    # Derived from the allowed IP collection, see route_service.derive_ip_filter
    with_ip_filter = Column(Boolean, default=False, nullable=False)
    with_token = Column(Boolean, default=False, nullable=False)
    with_rate_limit = Column(Boolean, default=False, nullable=False)

    # Relationships
    allowed_ips = relationship(
        "AllowedIp",
        back_populates="gateway_route",
        cascade="all, delete-orphan",
        order_by="AllowedIp.id",
    )
    rate_limit = relationship(
        "RateLimit",
        back_populates="gateway_route",
        cascade="all, delete-orphan",
        uselist=False,
    )
