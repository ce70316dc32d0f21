"""Rate limit policy database model (administrative store)."""
from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from gateway_admin.core.database import Base


class RateLimit(Base):
    """Fixed-window rate limit policy; at most one per route."""
    __tablename__ = "rate_limits"
    __table_args__ = (
        CheckConstraint("max_requests > 0", name="ck_rate_limits_max_requests_positive"),
        CheckConstraint("time_window_ms > 0", name="ck_rate_limits_time_window_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    route_id = Column(
        Integer, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    max_requests = Column(Integer, nullable=False)
    time_window_ms = Column(Integer, nullable=False)

    # Relationships
    gateway_route = relationship("GatewayRoute", back_populates="rate_limit")
