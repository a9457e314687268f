"""SQLAlchemy ORM models and enums.

This module defines the agency schema using UUID primary keys and explicit
relationships. Ownership is a strict chain:

    User -> Client -> Campaign -> AdSet -> Ad -> MetaMetric

Every query that aggregates metrics is scoped by `Client.user_id`, which is
what keeps one agency's numbers out of another's.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import Uuid


# Single Base used by the entire application
Base = declarative_base()


def _utcnow() -> datetime:
    # Naive UTC for timezone-less DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Enums ---------------------------------------------------------

class CalculationBasisEnum(str, enum.Enum):
    sales_revenue = "sales_revenue"
    total_revenue = "total_revenue"


class NotificationTypeEnum(str, enum.Enum):
    roas_alert = "roas_alert"
    budget_alert = "budget_alert"
    sync_error = "sync_error"
    general = "general"


# Core models ----------------------------------------------------

class User(Base):
    """Agency user. Owns clients; every aggregate is scoped to one user."""
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    clients = relationship("Client", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __str__(self):
        return self.email


class Client(Base):
    """A customer of the agency whose ad account is managed."""
    __tablename__ = "clients"

    client_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    industry = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="clients")
    # 1:1 commission configuration, removed together with the client
    commission_model = relationship(
        "CommissionModel",
        back_populates="client",
        uselist=False,
        cascade="all, delete-orphan",
    )
    campaigns = relationship("Campaign", back_populates="client", cascade="all, delete-orphan")

    def __str__(self):
        return self.name


class CommissionModel(Base):
    """Per-client commission configuration.

    WHAT: Percentage (0-100) applied to either sales revenue or total revenue.
    WHY: Drives the agency revenue figure on the overview dashboard.
    REFERENCES: growthpilot/services/commission.py
    """
    __tablename__ = "commission_models"
    __table_args__ = (
        CheckConstraint(
            "commission_percentage >= 0 AND commission_percentage <= 100",
            name="ck_commission_percentage_range",
        ),
        CheckConstraint(
            "calculation_basis IN ('sales_revenue', 'total_revenue')",
            name="ck_commission_calculation_basis",
        ),
    )

    model_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.client_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    commission_percentage = Column(Numeric(5, 2), nullable=False)
    calculation_basis = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    client = relationship("Client", back_populates="commission_model")

    def __str__(self):
        return f"{self.commission_percentage}% of {self.calculation_basis}"


class Campaign(Base):
    __tablename__ = "campaigns"

    campaign_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.client_id", ondelete="CASCADE"), nullable=False, index=True)
    meta_campaign_id = Column(String(255), unique=True, nullable=False, index=True)
    campaign_name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False)  # ACTIVE, PAUSED, ARCHIVED (Meta convention)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    client = relationship("Client", back_populates="campaigns")
    ad_sets = relationship("AdSet", back_populates="campaign", cascade="all, delete-orphan")

    def __str__(self):
        return f"{self.campaign_name} ({self.status})"


class AdSet(Base):
    __tablename__ = "ad_sets"

    ad_set_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid(as_uuid=True), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False, index=True)
    meta_ad_set_id = Column(String(255), unique=True, nullable=False, index=True)
    ad_set_name = Column(String(255), nullable=False)
    budget = Column(Numeric(12, 2), nullable=True)
    status = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    campaign = relationship("Campaign", back_populates="ad_sets")
    ads = relationship("Ad", back_populates="ad_set", cascade="all, delete-orphan")


class Ad(Base):
    __tablename__ = "ads"

    ad_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ad_set_id = Column(Uuid(as_uuid=True), ForeignKey("ad_sets.ad_set_id", ondelete="CASCADE"), nullable=False, index=True)
    meta_ad_id = Column(String(255), unique=True, nullable=False, index=True)
    ad_name = Column(String(255), nullable=False)
    creative_url = Column(Text, nullable=True)
    status = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    ad_set = relationship("AdSet", back_populates="ads")
    metrics = relationship("MetaMetric", back_populates="ad", cascade="all, delete-orphan")


class MetaMetric(Base):
    """Daily performance of one ad.

    One row per (ad, date). Base measures are required and non-negative;
    derived ratios are nullable and stay NULL when their denominator is zero.
    Re-syncing a day overwrites the row (see services/meta_metrics.py::store_metrics).
    """
    __tablename__ = "meta_metrics"
    __table_args__ = (UniqueConstraint("ad_id", "date", name="uq_meta_metrics_ad_date"),)

    metric_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ad_id = Column(Uuid(as_uuid=True), ForeignKey("ads.ad_id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # Base measures
    spend = Column(Numeric(12, 2), nullable=False, default=0)
    impressions = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    conversions = Column(Integer, nullable=False, default=0)
    add_to_cart = Column(Integer, nullable=False, default=0)
    purchases = Column(Integer, nullable=False, default=0)

    # Derived (nullable)
    roas = Column(Numeric(10, 2), nullable=True)
    ctr = Column(Numeric(5, 2), nullable=True)
    cpc = Column(Numeric(10, 2), nullable=True)
    cpm = Column(Numeric(10, 2), nullable=True)
    cpa = Column(Numeric(10, 2), nullable=True)
    frequency = Column(Numeric(5, 2), nullable=True)

    created_at = Column(DateTime, default=_utcnow)

    ad = relationship("Ad", back_populates="metrics")

    def __str__(self):
        return f"{self.ad_id} @ {self.date}: spend={self.spend}"


class Notification(Base):
    """Threshold alerts and sync failures shown in the dashboard bell."""
    __tablename__ = "notifications"

    notification_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationTypeEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    read_status = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="notifications")
