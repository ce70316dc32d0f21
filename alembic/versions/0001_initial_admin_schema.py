"""initial admin schema: routes, allowed_ips, rate_limits

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.String(length=255), nullable=False),
        sa.Column("uri", sa.String(length=500), nullable=False),
        sa.Column("predicates", sa.String(length=500), nullable=False),
        sa.Column("with_ip_filter", sa.Boolean(), nullable=False),
        sa.Column("with_token", sa.Boolean(), nullable=False),
        sa.Column("with_rate_limit", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routes_id"), "routes", ["id"], unique=False)
    op.create_index(op.f("ix_routes_route_id"), "routes", ["route_id"], unique=True)
    op.create_index(op.f("ix_routes_predicates"), "routes", ["predicates"], unique=True)

    op.create_table(
        "allowed_ips",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("gateway_route_id", sa.Integer(), nullable=False),
        sa.Column("ip", sa.String(length=15), nullable=False),
        sa.ForeignKeyConstraint(["gateway_route_id"], ["routes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("gateway_route_id", "ip", name="uq_allowed_ips_route_ip"),
    )
    op.create_index(op.f("ix_allowed_ips_id"), "allowed_ips", ["id"], unique=False)
    op.create_index(op.f("ix_allowed_ips_gateway_route_id"), "allowed_ips", ["gateway_route_id"], unique=False)

    op.create_table(
        "rate_limits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.Integer(), nullable=False),
        sa.Column("max_requests", sa.Integer(), nullable=False),
        sa.Column("time_window_ms", sa.Integer(), nullable=False),
        sa.CheckConstraint("max_requests > 0", name="ck_rate_limits_max_requests_positive"),
        sa.CheckConstraint("time_window_ms > 0", name="ck_rate_limits_time_window_positive"),
        sa.ForeignKeyConstraint(["route_id"], ["routes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_rate_limits_id"), "rate_limits", ["id"], unique=False)
    op.create_index(op.f("ix_rate_limits_route_id"), "rate_limits", ["route_id"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_rate_limits_route_id"), table_name="rate_limits")
    op.drop_index(op.f("ix_rate_limits_id"), table_name="rate_limits")
    op.drop_table("rate_limits")
    op.drop_index(op.f("ix_allowed_ips_gateway_route_id"), table_name="allowed_ips")
    op.drop_index(op.f("ix_allowed_ips_id"), table_name="allowed_ips")
    op.drop_table("allowed_ips")
    op.drop_index(op.f("ix_routes_predicates"), table_name="routes")
    op.drop_index(op.f("ix_routes_route_id"), table_name="routes")
    op.drop_index(op.f("ix_routes_id"), table_name="routes")
    op.drop_table("routes")
