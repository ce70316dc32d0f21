"""Allowed IP database model (administrative store)."""
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from gateway_admin.core.database import Base


class AllowedIp(Base):
    """IPv4 address allowed to reach one gateway route."""
    __tablename__ = "allowed_ips"
    __table_args__ = (
        UniqueConstraint("gateway_route_id", "ip", name="uq_allowed_ips_route_ip"),
    )

    id = Column(Integer, primary_key=True, index=True)
    gateway_route_id = Column(
        Integer, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ip = Column(String(15), nullable=False)  # Dotted-quad IPv4

    # Relationships
    gateway_route = relationship("GatewayRoute", back_populates="allowed_ips")
