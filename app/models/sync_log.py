"""Sync log model"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.models.base import Base


class SyncStatus(str, enum.Enum):
    """Sync status enumeration"""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class SyncDirection(str, enum.Enum):
    """Sync direction enumeration"""
    INTERNAL_TO_EXTERNAL = "internal_to_external"
    EXTERNAL_TO_INTERNAL = "external_to_internal"


class SyncLog(Base):
    """Outcome of syncing a single record"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    sync_run_id = Column(Integer, ForeignKey("sync_runs.id"), nullable=True)
    project_id = Column(Integer, nullable=True)

    # Record identifiers on each side
    internal_id = Column(Integer, nullable=True)
    external_key = Column(String, nullable=True)

    status = Column(Enum(SyncStatus), nullable=False)
    direction = Column(Enum(SyncDirection), nullable=True)
    message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    sync_run = relationship("SyncRun", back_populates="logs")

    def __repr__(self):
        return f"<SyncLog(status={self.status}, direction={self.direction})>"
