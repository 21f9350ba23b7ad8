import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func

from database import Base


class SubscriptionPlan(Base):
    """Admin-defined plan. ``months == 0`` means a 24-hour trial."""

    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False, unique=True)
    months = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    is_custom = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
