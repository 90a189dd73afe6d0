from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexlink.common.enums import UserRole
from lexlink.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.CLIENT.value)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)  # ISO 3166 alpha-2
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Relationships
    provider_profile = relationship("ProviderProfile", back_populates="user", uselist=False, lazy="selectin")
