"""Test-management server records.

These mirror the payloads returned by the test-management API. Only the
fields the data-sync reads or writes are modelled.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


@dataclass
class Project:
    project_id: int
    name: str = ""
    project_template_id: Optional[int] = None


@dataclass
class User:
    user_id: int
    username: str


@dataclass
class CustomProperty:
    """Custom property definition"""

    custom_property_id: Optional[int]
    name: str
    custom_property_type_id: int
    property_number: int


@dataclass
class ArtifactCustomProperty:
    """Custom property value slot on an artifact"""

    property_number: int
    definition: Optional[CustomProperty] = None
    string_value: Optional[str] = None
    integer_value: Optional[int] = None
    boolean_value: Optional[bool] = None
    date_time_value: Optional[datetime] = None
    decimal_value: Optional[Decimal] = None
    integer_list_value: Optional[List[int]] = None


@dataclass
class Incident:
    project_id: int
    incident_id: Optional[int] = None
    name: str = ""
    description: str = ""
    incident_status_id: Optional[int] = None
    incident_type_id: Optional[int] = None
    priority_id: Optional[int] = None
    severity_id: Optional[int] = None
    opener_id: Optional[int] = None
    owner_id: Optional[int] = None
    detected_release_id: Optional[int] = None
    resolved_release_id: Optional[int] = None
    creation_date: Optional[datetime] = None
    last_update_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    estimated_effort: Optional[int] = None
    actual_effort: Optional[int] = None
    projected_effort: Optional[int] = None
    remaining_effort: Optional[int] = None
    completion_percent: int = 0
    custom_properties: List[ArtifactCustomProperty] = field(default_factory=list)


@dataclass
class Release:
    project_id: int
    name: str
    version_number: str
    release_id: Optional[int] = None
    active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    creator_id: Optional[int] = None
    creation_date: Optional[datetime] = None
    resource_count: int = 1
    days_non_working: int = 0


@dataclass
class Comment:
    text: str
    artifact_id: Optional[int] = None
    user_id: Optional[int] = None
    creation_date: Optional[datetime] = None


@dataclass
class Document:
    """File or URL attachment"""

    attachment_id: int
    attachment_type_id: int
    filename_or_url: str
    description: str = ""


@dataclass
class Association:
    dest_artifact_id: int
    dest_artifact_type_id: int
    comment: str = ""
