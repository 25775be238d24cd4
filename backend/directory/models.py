from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Business(Base):
    __tablename__ = "businesses"
    __table_args__ = (
        CheckConstraint("rating_value IS NULL OR (rating_value >= 0 AND rating_value <= 5)", name="businesses_rating_range"),
        CheckConstraint("rating_count >= 0", name="businesses_rating_count_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    primary_category: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    street: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    zip: Mapped[str | None] = mapped_column(String(16), nullable=True)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, default="US")
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    work_hours: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    main_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    query_category: Mapped[str | None] = mapped_column(Text, nullable=True)
    query_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    query_city: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    secondary_categories: Mapped[list["BusinessSecondaryCategory"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def secondary_category_names(self) -> list[str]:
        return [row.category for row in self.secondary_categories]


class BusinessSecondaryCategory(Base):
    __tablename__ = "business_secondary_categories"
    __table_args__ = (UniqueConstraint("business_id", "category", name="uq_business_secondary_category"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Stored exactly as the provider spells it; matched case-sensitively.
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    business: Mapped[Business] = relationship(back_populates="secondary_categories")


class CategoryLocationFetch(Base):
    __tablename__ = "category_location_fetches"
    __table_args__ = (UniqueConstraint("category", "city", "state", name="uq_category_location_fetch"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProviderUsageLog(Base):
    __tablename__ = "provider_usage_log"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    provider: Mapped[str] = mapped_column(String(64), nullable=False)
    keyword: Mapped[str] = mapped_column(Text, nullable=False)
    records_returned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    succeeded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
