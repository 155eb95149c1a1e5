"""
SQLAlchemy ORM Models for the certificate service
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from eventeye.db.database import Base


class KVEntry(Base):
    """One key/value pair of the flat, prefix-partitioned namespace"""
    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True)
    value = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
