"""initial marketplace schema

Revision ID: 3f1c2a9b7e10
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9b7e10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("role", _enum("userrole", "client", "worker", "admin"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"])

    op.create_table(
        "workers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("profession", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rating", sa.Numeric(3, 2), server_default="0", nullable=False),
        sa.Column(
            "availability",
            _enum("workeravailability", "available", "busy", "offline"),
            server_default="available",
            nullable=False,
        ),
        sa.Column("immediate_service", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("coverage_radius_km", sa.Integer(), server_default="15", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id"),
        sa.CheckConstraint("coverage_radius_km >= 0", name="ck_worker_radius_nonneg"),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_worker_rating_range"),
    )
    op.create_index("ix_workers_id", "workers", ["id"])
    op.create_index("ix_workers_profession", "workers", ["profession"])
    op.create_index("ix_worker_availability_rating", "workers", ["availability", "rating"])

    op.create_table(
        "worker_availability",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "day_of_week",
            _enum("dayofweek", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"),
            nullable=False,
        ),
        sa.Column("enabled", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("worker_id", "day_of_week", name="uq_worker_availability_day"),
    )
    op.create_index("ix_worker_availability_worker_id", "worker_availability", ["worker_id"])

    op.create_table(
        "service_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column(
            "urgency",
            _enum("urgency", "low", "medium", "high", "emergency"),
            server_default="medium",
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("budget_estimate", sa.Numeric(10, 2), nullable=True),
        sa.Column("preferred_date", sa.Date(), nullable=True),
        sa.Column("preferred_time", sa.Time(), nullable=True),
        sa.Column("contact_method", sa.String(), server_default="both", nullable=False),
        sa.Column("client_phone", sa.String(), nullable=True),
        sa.Column(
            "status",
            _enum("servicerequeststatus", "pending", "accepted", "rejected", "completed"),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("budget_estimate IS NULL OR budget_estimate >= 0", name="ck_request_budget_nonneg"),
    )
    op.create_index("ix_service_requests_id", "service_requests", ["id"])
    op.create_index("ix_service_requests_client_id", "service_requests", ["client_id"])
    op.create_index("ix_service_requests_worker_id", "service_requests", ["worker_id"])
    op.create_index("ix_service_requests_created_at", "service_requests", ["created_at"])
    op.create_index(
        "ix_request_worker_status_created", "service_requests", ["worker_id", "status", "created_at"]
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.Time(), nullable=False),
        sa.Column(
            "status",
            _enum("appointmentstatus", "pending", "confirmed", "in_progress", "completed", "cancelled"),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("total_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column(
            "source_request_id",
            sa.Integer(),
            sa.ForeignKey("service_requests.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("total_cost IS NULL OR total_cost >= 0", name="ck_appointment_cost_nonneg"),
    )
    op.create_index("ix_appointments_id", "appointments", ["id"])
    op.create_index("ix_appointments_client_id", "appointments", ["client_id"])
    op.create_index("ix_appointments_worker_id", "appointments", ["worker_id"])
    op.create_index("ix_appointments_scheduled_date", "appointments", ["scheduled_date"])
    op.create_index("ix_appointments_source_request_id", "appointments", ["source_request_id"])
    op.create_index(
        "ix_appointment_worker_status_date", "appointments", ["worker_id", "status", "scheduled_date"]
    )


def downgrade() -> None:
    op.drop_table("appointments")
    op.drop_table("service_requests")
    op.drop_table("worker_availability")
    op.drop_table("workers")
    op.drop_table("users")
