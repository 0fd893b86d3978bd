"""Sync run model"""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class SyncRun(Base):
    """One execution of the data-sync across all mapped projects"""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    data_sync_system_id = Column(Integer, nullable=False, index=True)

    # "running", "success" or "failed"
    status = Column(String, nullable=False, default="running")

    # Server clock at the start of the run; the next run filters on it.
    server_date_time = Column(DateTime, nullable=True)
    last_sync_date = Column(DateTime, nullable=True)

    started_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)

    stats = Column(Text, nullable=True)  # JSON snapshot of the run summary
    error = Column(Text, nullable=True)

    logs = relationship("SyncLog", back_populates="sync_run")

    def __repr__(self):
        return f"<SyncRun(id={self.id}, status='{self.status}')>"
