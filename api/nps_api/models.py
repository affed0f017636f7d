from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, func
from .database import Base


class EntityRecord(Base):
    """Single-table document row. `data` holds the full entity body."""

    __tablename__ = "entity"

    pk = Column(String(255), primary_key=True)
    sk = Column(String(255), primary_key=True)
    gsi1pk = Column(String(255), nullable=True)
    gsi1sk = Column(String(255), nullable=True)
    entity = Column(String(40), nullable=False)
    tenant_id = Column(String(64), nullable=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_entity_gsi1", "gsi1pk", "gsi1sk"),
        Index("idx_entity_tenant", "tenant_id"),
    )


class QueueMessage(Base):
    __tablename__ = "dispatch_queue_message"

    id = Column(String(64), primary_key=True)
    queue_name = Column(String(80), nullable=False)
    body = Column(JSON, nullable=False)
    available_at = Column(DateTime(timezone=True), nullable=False)
    receipt_handle = Column(String(64), nullable=True)
    receive_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (Index("idx_queue_available", "queue_name", "available_at"),)
