import uuid

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexlink.db.base import BaseModel, JSONType


class ProviderProfile(BaseModel):
    __tablename__ = "provider_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, unique=True, index=True
    )
    provider_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    education: Mapped[str | None] = mapped_column(String(500), nullable=True)
    years_of_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    languages: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=list)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    service_radius_m: Mapped[int | None] = mapped_column(Integer, nullable=True)
    working_hours: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=dict)
    is_24_7: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_top_rated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_services: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    user = relationship("User", back_populates="provider_profile", lazy="selectin")
    specializations = relationship(
        "Specialization", back_populates="provider", lazy="selectin", cascade="all, delete-orphan"
    )
    services = relationship(
        "ProviderService",
        back_populates="provider",
        lazy="selectin",
        order_by="ProviderService.position",
        cascade="all, delete-orphan",
    )


class Specialization(BaseModel):
    __tablename__ = "specializations"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("provider_profiles.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    provider = relationship("ProviderProfile", back_populates="specializations")


class ProviderService(BaseModel):
    __tablename__ = "provider_services"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("provider_profiles.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pricing_mode: Mapped[str] = mapped_column(String(20), nullable=False)  # fixed, percentage, hourly
    price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # minor units
    percentage_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 10 = 10%
    min_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # minor units
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    provider = relationship("ProviderProfile", back_populates="services")
