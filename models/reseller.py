import uuid

from sqlalchemy import Column, DateTime, String, func

from database import Base


class Reseller(Base):
    """Role-specific reseller record; ``id`` matches ``profiles.id``."""

    __tablename__ = "resellers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Legacy column kept for schema parity. Lookups go through ``id`` only.
    user_id = Column(String(36), nullable=True)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    plan_type = Column(String, nullable=True, index=True)
    plan_end_date = Column(DateTime(timezone=True), nullable=True, index=True)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
