"""External bug-tracker API contract"""

from datetime import datetime
from typing import List, Optional, Protocol

from app.models.artifacts import Release
from app.models.external import ExternalBug, ExternalBugDraft, ExternalComment, ExternalRelease


class BugTrackerClient(Protocol):
    """Operations the data-sync performs against the external bug tracker"""

    def connect(self, connection_string: str, login: str, password: str) -> None:
        ...

    def get_bugs_updated_since(self, project_id: str, since: datetime) -> List[ExternalBug]:
        ...

    def create_bug(self, draft: ExternalBugDraft) -> str:
        """Create a bug and return its id."""
        ...

    def get_comments(self, bug_id: str) -> List[ExternalComment]:
        ...

    def add_comment(
        self, bug_id: str, text: str, author: str, created_at: Optional[datetime]
    ) -> None:
        ...

    def get_release(self, project_id: str, key: str) -> Optional[ExternalRelease]:
        ...

    def release_exists(self, project_id: str, key: str) -> bool:
        ...

    def create_release(self, project_id: str, release: Release) -> str:
        """Create a version from an internal release and return its key."""
        ...

    def add_attachment(self, bug_id: str, filename: str, description: str, data: bytes) -> None:
        ...

    def add_link(self, bug_id: str, url: str, description: str) -> None:
        ...

    def link_bugs(self, bug_id: str, target_bug_id: str) -> None:
        ...
