"""Initial schema - users, providers, bookings, jobs, notifications

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="client"),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(2), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )

    # Provider profiles
    op.create_table(
        "provider_profiles",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, unique=True, index=True),
        sa.Column("provider_type", sa.String(30), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("education", sa.String(500), nullable=True),
        sa.Column("years_of_experience", sa.Integer, nullable=True),
        sa.Column("languages", postgresql.JSONB, nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("service_radius_m", sa.Integer, nullable=True),
        sa.Column("working_hours", postgresql.JSONB, nullable=True),
        sa.Column("is_24_7", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_top_rated", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("completed_services", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("rating", sa.Float, nullable=False, server_default=sa.text("0.0")),
        sa.Column("review_count", sa.Integer, nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "specializations",
        *_base_columns(),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("provider_profiles.id"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
    )

    op.create_table(
        "provider_services",
        *_base_columns(),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("provider_profiles.id"), nullable=False, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("pricing_mode", sa.String(20), nullable=False),
        sa.Column("price", sa.BigInteger, nullable=True),
        sa.Column("percentage_rate", sa.Integer, nullable=True),
        sa.Column("min_price", sa.BigInteger, nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default=sa.text("0")),
    )

    # Bookings
    op.create_table(
        "bookings",
        *_base_columns(),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("provider_profiles.id"), nullable=False, index=True),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("provider_services.id"), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("total_amount", sa.BigInteger, nullable=False, server_default=sa.text("0")),
        sa.Column("platform_fee", sa.BigInteger, nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status_history", postgresql.JSONB, nullable=True),
        sa.CheckConstraint("total_amount >= 0", name="ck_bookings_total_amount_non_negative"),
        sa.CheckConstraint(
            "platform_fee >= 0 AND platform_fee <= total_amount",
            name="ck_bookings_platform_fee_bounds",
        ),
    )

    op.create_table(
        "reviews",
        *_base_columns(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewee_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.UniqueConstraint("booking_id", "reviewer_id", name="uq_reviews_booking_reviewer"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    # Jobs
    op.create_table(
        "job_postings",
        *_base_columns(),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("provider_type", sa.String(30), nullable=False, index=True),
        sa.Column("pricing_mode", sa.String(20), nullable=False),
        sa.Column("budget", sa.BigInteger, nullable=True),
        sa.Column("hourly_rate", sa.BigInteger, nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("urgency", sa.String(20), nullable=False, server_default="asap"),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="open", index=True),
        sa.Column("status_history", postgresql.JSONB, nullable=True),
    )

    op.create_table(
        "job_applications",
        *_base_columns(),
        sa.Column("posting_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("job_postings.id"), nullable=False, index=True),
        sa.Column("provider_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("provider_profiles.id"), nullable=False, index=True),
        sa.Column("proposed_price", sa.BigInteger, nullable=False),
        sa.Column("proposed_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cover_letter", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("status_history", postgresql.JSONB, nullable=True),
    )
    # At most one accepted application per posting
    op.create_index(
        "uq_job_applications_one_accepted",
        "job_applications",
        ["posting_id"],
        unique=True,
        postgresql_where=sa.text("status = 'accepted'"),
    )

    # Notifications
    op.create_table(
        "notifications",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_read", sa.Boolean, server_default=sa.text("false")),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_index("uq_job_applications_one_accepted", table_name="job_applications")
    op.drop_table("job_applications")
    op.drop_table("job_postings")
    op.drop_table("reviews")
    op.drop_table("bookings")
    op.drop_table("provider_services")
    op.drop_table("specializations")
    op.drop_table("provider_profiles")
    op.drop_table("users")
