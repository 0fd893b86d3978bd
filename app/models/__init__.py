"""Models"""

from app.models.base import Base
from app.models.data_mapping import DataMapping
from app.models.sync_log import SyncLog
from app.models.sync_run import SyncRun

__all__ = [
    "Base",
    "DataMapping",
    "SyncLog",
    "SyncRun",
]
