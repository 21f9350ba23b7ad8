import uuid

from sqlalchemy import Column, DateTime, String, func

from database import Base


class Profile(Base):
    """Account-level record shared by every authenticated user (admin or reseller)."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=True, index=True)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="reseller")
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
