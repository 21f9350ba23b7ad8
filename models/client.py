import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from database import Base


class Client(Base):
    """Subscription client owned by a reseller (column names follow the hosted schema)."""

    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column("cliente", String, nullable=False)
    whatsapp = Column(String, nullable=True)
    platform = Column("plataforma", String, nullable=True)
    devices = Column("dispositivos", Integer, nullable=True, default=1)
    price = Column("precio", Numeric(12, 2), nullable=True, default=0)
    plan = Column(String, nullable=True, index=True)
    start_date = Column("fecha_inicio", Date, nullable=True)
    end_date = Column("fecha_fin", Date, nullable=True, index=True)
    status = Column(String, nullable=False, default="active")
    notes = Column("observacion", Text, nullable=True)
    reseller_id = Column(String(36), ForeignKey("resellers.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
