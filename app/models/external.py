"""External bug-tracker records"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ExternalBug:
    """Bug as reported by the external system"""

    id: str
    project_id: str
    name: str = ""
    description: str = ""
    creator: str = ""
    priority: str = ""
    severity: str = ""
    status: str = ""
    type: str = ""
    assignee: str = ""
    detected_release: str = ""
    resolved_release: str = ""
    start_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    estimated_effort_minutes: Optional[int] = None
    actual_effort_minutes: Optional[int] = None
    remaining_effort_minutes: Optional[int] = None
    # Keyed by external field name.
    custom_fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExternalComment:
    text: str
    creator: str = ""
    creation_date: Optional[datetime] = None


@dataclass
class ExternalRelease:
    key: str
    name: str = ""
    version_number: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@dataclass
class ExternalBugDraft:
    """Payload used to create a bug in the external system"""

    project_id: str
    name: str
    description_html: str
    description_text: str
    status: str
    type: str
    priority: str = ""
    severity: str = ""
    reporter: str = ""
    assignee: str = ""
    detected_release: str = ""
    resolved_release: str = ""
    custom_fields: Dict[str, Any] = field(default_factory=dict)
    creation_date: Optional[datetime] = None
    last_update_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    estimated_effort_minutes: Optional[int] = None
    actual_effort_minutes: Optional[int] = None
    projected_effort_minutes: Optional[int] = None
    remaining_effort_minutes: Optional[int] = None
    completion_percent: int = 0
    # Link back to the incident in the test-management system
    internal_url: str = ""
