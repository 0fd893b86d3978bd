"""Services"""

from app.services.mapping_changes import MappingChangeSet
from app.services.sync_service import DataSyncService, RecordResult
from app.services.user_mapping import UserMapper

__all__ = ["DataSyncService", "MappingChangeSet", "RecordResult", "UserMapper"]
