"""Test-management server API contract.

The data-sync talks to the server through an object implementing
TestManagementClient. The transport (SOAP, REST) and session handling live in
the implementation; every call here is synchronous and raises on transport
or authorization failures.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from app.models.artifacts import (
    Association,
    Comment,
    CustomProperty,
    Document,
    Incident,
    Project,
    Release,
    User,
)
from app.models.data_mapping import DataMapping


class TestManagementClient(Protocol):
    """Operations the data-sync performs against the test-management server"""

    def authenticate(self, login: str, password: str, application: str) -> bool:
        """Open a session; False when the credentials are rejected."""
        ...

    def get_product_name(self) -> str:
        ...

    def get_web_server_url(self) -> str:
        ...

    def get_artifact_url(self, artifact_type_id: int, project_id: int, artifact_id: int) -> str:
        """Artifact URL, possibly relative to the web server ("~/...")."""
        ...

    # Data-mapping repository

    def retrieve_project_mappings(self, data_sync_system_id: int) -> List[DataMapping]:
        ...

    def retrieve_user_mappings(self, data_sync_system_id: int) -> List[DataMapping]:
        ...

    def retrieve_field_value_mappings(
        self, project_id: int, data_sync_system_id: int, artifact_field_id: int
    ) -> List[DataMapping]:
        ...

    def retrieve_custom_property_mapping(
        self,
        project_id: int,
        data_sync_system_id: int,
        artifact_type_id: int,
        custom_property_id: int,
    ) -> Optional[DataMapping]:
        ...

    def retrieve_custom_property_value_mappings(
        self,
        project_id: int,
        data_sync_system_id: int,
        artifact_type_id: int,
        custom_property_id: int,
    ) -> List[DataMapping]:
        ...

    def retrieve_artifact_mappings(
        self, project_id: int, data_sync_system_id: int, artifact_type_id: int
    ) -> List[DataMapping]:
        ...

    def add_artifact_mappings(
        self,
        project_id: int,
        data_sync_system_id: int,
        artifact_type_id: int,
        mappings: Sequence[DataMapping],
    ) -> None:
        ...

    def remove_artifact_mappings(
        self,
        project_id: int,
        data_sync_system_id: int,
        artifact_type_id: int,
        mappings: Sequence[DataMapping],
    ) -> None:
        ...

    # Projects, custom properties and users

    def get_project(self, project_id: int) -> Optional[Project]:
        ...

    def retrieve_custom_properties(
        self, project_template_id: int, artifact_type_id: int
    ) -> List[CustomProperty]:
        ...

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    # Incidents

    def count_incidents(self, project_id: int) -> int:
        ...

    def retrieve_new_incidents(
        self, project_id: int, since: datetime, start_row: int, page_size: int
    ) -> List[Incident]:
        """Incidents created since `since`; `start_row` is 1-based."""
        ...

    def get_incident(self, project_id: int, incident_id: int) -> Incident:
        ...

    def create_incident(self, incident: Incident) -> Incident:
        ...

    def update_incident(self, incident: Incident) -> None:
        ...

    def retrieve_incident_comments(self, project_id: int, incident_id: int) -> List[Comment]:
        ...

    def add_incident_comments(self, project_id: int, comments: Sequence[Comment]) -> None:
        ...

    # Releases

    def get_release(self, project_id: int, release_id: int) -> Optional[Release]:
        ...

    def create_release(self, release: Release) -> Release:
        ...

    # Associations and attachments

    def retrieve_associations(
        self, project_id: int, artifact_type_id: int, artifact_id: int
    ) -> List[Association]:
        ...

    def retrieve_documents(
        self, project_id: int, artifact_type_id: int, artifact_id: int
    ) -> List[Document]:
        ...

    def open_document(self, project_id: int, attachment_id: int) -> bytes:
        ...

    def add_url_document(
        self,
        project_id: int,
        artifact_type_id: int,
        artifact_id: int,
        url: str,
        description: str,
    ) -> None:
        ...
