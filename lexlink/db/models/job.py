import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexlink.common.enums import ApplicationStatus, PostingStatus, Urgency
from lexlink.db.base import BaseModel, StatusHistoryMixin


class JobPosting(BaseModel, StatusHistoryMixin):
    __tablename__ = "job_postings"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    provider_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    pricing_mode: Mapped[str] = mapped_column(String(20), nullable=False)  # fixed, hourly
    budget: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # minor units
    hourly_rate: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # minor units
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    urgency: Mapped[str] = mapped_column(String(20), default=Urgency.ASAP.value, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=PostingStatus.OPEN.value, nullable=False, index=True
    )

    # Relationships
    applications = relationship("JobApplication", back_populates="posting", lazy="selectin")


class JobApplication(BaseModel, StatusHistoryMixin):
    __tablename__ = "job_applications"
    __table_args__ = (
        # At most one accepted application per posting
        Index(
            "uq_job_applications_one_accepted",
            "posting_id",
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )

    posting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("job_postings.id"), nullable=False, index=True
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("provider_profiles.id"), nullable=False, index=True
    )
    proposed_price: Mapped[int] = mapped_column(BigInteger, nullable=False)  # minor units
    proposed_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ApplicationStatus.PENDING.value, nullable=False, index=True
    )

    # Relationships
    posting = relationship("JobPosting", back_populates="applications")
    provider = relationship("ProviderProfile", lazy="selectin")
