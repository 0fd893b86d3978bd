"""Application configuration"""

from dataclasses import dataclass
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from app.constants import INCIDENT_PAGE_SIZE


class Settings(BaseSettings):
    """Application settings"""

    # Database (sync run history)
    database_url: str = "sqlite:///./incidentbridge.db"

    # Test-management server
    data_sync_system_id: int = 1
    web_service_base_url: str = ""
    internal_login: str = ""
    internal_password: str = ""

    # External bug tracker
    external_system_name: str = "External System"
    connection_string: str = ""
    external_login: str = ""
    external_password: str = ""
    # Format string for back-links added to synced incidents, e.g.
    # "https://bugs.example.com/{bug_id}". Leave unset to skip back-links.
    external_bug_url: Optional[str] = None

    # Sync
    time_offset_hours: int = 0
    auto_map_users: bool = False
    incident_page_size: int = INCIDENT_PAGE_SIZE

    # Free-form values the external adapter may interpret.
    custom_01: Optional[str] = None
    custom_02: Optional[str] = None
    custom_03: Optional[str] = None
    custom_04: Optional[str] = None
    custom_05: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    # Emit step-by-step trace messages (DEBUG) during a sync run.
    trace_logging: bool = False

    @field_validator("web_service_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return (value or "").rstrip("/")

    @field_validator("incident_page_size")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("incident_page_size must be at least 1")
        return value

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for a single data-sync run.

    Built once from Settings and handed to the sync entry point.
    """

    data_sync_system_id: int
    internal_login: str
    internal_password: str
    connection_string: str = ""
    external_login: str = ""
    external_password: str = ""
    external_system_name: str = "External System"
    external_bug_url: Optional[str] = None
    time_offset_hours: int = 0
    auto_map_users: bool = False
    trace_logging: bool = False
    incident_page_size: int = INCIDENT_PAGE_SIZE
    custom_01: Optional[str] = None
    custom_02: Optional[str] = None
    custom_03: Optional[str] = None
    custom_04: Optional[str] = None
    custom_05: Optional[str] = None

    @classmethod
    def from_settings(cls, s: Settings) -> "SyncConfig":
        return cls(
            data_sync_system_id=s.data_sync_system_id,
            internal_login=s.internal_login,
            internal_password=s.internal_password,
            connection_string=s.connection_string,
            external_login=s.external_login,
            external_password=s.external_password,
            external_system_name=s.external_system_name,
            external_bug_url=s.external_bug_url,
            time_offset_hours=s.time_offset_hours,
            auto_map_users=s.auto_map_users,
            trace_logging=s.trace_logging,
            incident_page_size=s.incident_page_size,
            custom_01=s.custom_01,
            custom_02=s.custom_02,
            custom_03=s.custom_03,
            custom_04=s.custom_04,
            custom_05=s.custom_05,
        )

    def external_bug_link(self, bug_id: str) -> Optional[str]:
        """URL of an external bug, or None when back-links are disabled."""
        if not self.external_bug_url:
            return None
        return self.external_bug_url.format(bug_id=bug_id)
