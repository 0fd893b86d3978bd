"""Incident synchronization service"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import SyncConfig
from app.constants import (
    DEFAULT_LAST_SYNC_DATE,
    MAX_VERSION_NUMBER_LENGTH,
    MIN_EXTERNAL_FILTER_DATE,
    ArtifactField,
    ArtifactType,
    AttachmentType,
)
from app.models.artifacts import Comment, CustomProperty, Incident, Project, Release
from app.models.data_mapping import DataMapping
from app.models.external import ExternalBug, ExternalBugDraft
from app.models.sync_log import SyncDirection, SyncLog, SyncStatus
from app.services import custom_fields
from app.services.bug_tracker import BugTrackerClient
from app.services.html_text import html_to_plain_text
from app.services.mapping_changes import MappingChangeSet
from app.services.mapping_resolver import (
    find_by_external_key,
    find_by_external_key_global,
    find_by_internal_id,
    find_by_internal_id_global,
)
from app.services.test_management import TestManagementClient
from app.services.user_mapping import UserMapper

logger = logging.getLogger(__name__)

DATA_SYNC_NAME = "IncidentBridge"

# Defaults for incidents created from bugs that lack them.
DEFAULT_INCIDENT_NAME = "Name Not Specified"
DEFAULT_INCIDENT_DESCRIPTION = "Description Not Specified"

# Releases created from external versions with no known end date.
DEFAULT_RELEASE_DAYS = 30


@dataclass(frozen=True)
class RecordResult:
    """Outcome of syncing one incident or bug"""

    status: SyncStatus
    reason: str = ""
    internal_id: Optional[int] = None
    external_key: Optional[str] = None


@dataclass
class ProjectContext:
    """Mappings and definitions fetched at the start of a project pass"""

    project_id: int
    external_project_id: str
    product_name: str
    users: UserMapper
    severity_mappings: List[DataMapping] = field(default_factory=list)
    priority_mappings: List[DataMapping] = field(default_factory=list)
    status_mappings: List[DataMapping] = field(default_factory=list)
    type_mappings: List[DataMapping] = field(default_factory=list)
    custom_properties: List[CustomProperty] = field(default_factory=list)
    property_mappings: Dict[int, Optional[DataMapping]] = field(default_factory=dict)
    value_mappings: Dict[int, List[DataMapping]] = field(default_factory=dict)
    incident_mappings: List[DataMapping] = field(default_factory=list)
    release_mappings: List[DataMapping] = field(default_factory=list)


class DataSyncService:
    """Synchronize incidents with an external bug tracker.

    Each run walks every mapped project twice: new incidents are pushed to the
    external system, then bugs changed there since the last run are pulled
    back as new or updated incidents. Mapping changes are written back to the
    server in batches at the end of each phase.
    """

    def __init__(
        self,
        db: Optional[Session],
        test_management: TestManagementClient,
        bug_tracker: BugTrackerClient,
        config: SyncConfig,
        sync_run_id: Optional[int] = None,
    ):
        self.db = db
        self.test_management = test_management
        self.bug_tracker = bug_tracker
        self.config = config
        self.sync_run_id = sync_run_id

    @staticmethod
    def _utcnow() -> datetime:
        """UTC 'now' as tz-naive datetime for DB + comparisons."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "projects": 0,
            "succeeded": 0,
            "skipped": 0,
            "failed": 0,
            "mappings_added": 0,
            "mappings_removed": 0,
        }

    @property
    def external_name(self) -> str:
        return self.config.external_system_name

    def _trace(self, message: str):
        if self.config.trace_logging:
            logger.debug(message)

    def _log_sync(
        self,
        project_id: int,
        result: RecordResult,
        direction: SyncDirection,
    ):
        """Persist the outcome of one record"""
        if self.db is None:
            return
        log = SyncLog(
            sync_run_id=self.sync_run_id,
            project_id=project_id,
            internal_id=result.internal_id,
            external_key=result.external_key,
            status=result.status,
            direction=direction,
            message=result.reason,
        )
        try:
            self.db.add(log)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to persist sync log for project {project_id}: {e}")

    def _record(
        self,
        stats: Dict[str, int],
        project_id: int,
        result: RecordResult,
        direction: SyncDirection,
    ):
        if result.status == SyncStatus.SUCCESS:
            stats["succeeded"] += 1
        elif result.status == SyncStatus.SKIPPED:
            stats["skipped"] += 1
        else:
            stats["failed"] += 1
        self._log_sync(project_id, result, direction)

    def execute(
        self, last_sync_date: Optional[datetime], server_date_time: datetime
    ) -> Dict[str, Any]:
        """Run one data-sync pass over every mapped project"""
        stats = self._empty_stats()
        if last_sync_date is None:
            last_sync_date = DEFAULT_LAST_SYNC_DATE

        self._trace(
            f"Starting {DATA_SYNC_NAME} data synchronization "
            f"(last sync {last_sync_date}, server time {server_date_time})"
        )

        try:
            self.bug_tracker.connect(
                self.config.connection_string,
                self.config.external_login,
                self.config.external_password,
            )
            product_name = self.test_management.get_product_name()

            if not self.test_management.authenticate(
                self.config.internal_login, self.config.internal_password, DATA_SYNC_NAME
            ):
                logger.error(
                    f"Unable to authenticate with {product_name} API, "
                    f"stopping data-synchronization"
                )
                return {"status": "failed", "error": "Authentication failed", "stats": stats}

            dss_id = self.config.data_sync_system_id
            project_mappings = self.test_management.retrieve_project_mappings(dss_id)
            users = UserMapper(
                self.test_management,
                self.test_management.retrieve_user_mappings(dss_id),
                auto_map_users=self.config.auto_map_users,
            )

            for project_mapping in project_mappings:
                project_stats = self.sync_project(
                    project_mapping, product_name, users, last_sync_date
                )
                if project_stats is None:
                    continue
                stats["projects"] += 1
                for key in project_stats:
                    stats[key] += project_stats[key]

            logger.info(f"Data synchronization completed: {stats}")
            return {"status": "success", "stats": stats}

        except Exception as e:
            logger.error(f"General error during data synchronization: {e}")
            return {"status": "failed", "error": str(e), "stats": stats}

    def sync_project(
        self,
        project_mapping: DataMapping,
        product_name: str,
        users: UserMapper,
        last_sync_date: datetime,
    ) -> Optional[Dict[str, int]]:
        """Both phases for one project; None if the project can't be loaded"""
        project_id = project_mapping.internal_id
        external_project_id = project_mapping.external_key
        dss_id = self.config.data_sync_system_id

        project = self.test_management.get_project(project_id)
        if project is None:
            logger.error(
                f"Unable to connect to {product_name} project PR{project_id}, please check "
                f"that the {product_name} login has the appropriate permissions"
            )
            return None

        self._trace(f"Synchronizing project PR{project_id} with {external_project_id}")
        ctx = self._load_project_context(project, external_project_id, product_name, users)
        stats = self._empty_stats()
        del stats["projects"]

        # Phase 1: new incidents go to the external system
        changes = MappingChangeSet()
        for incident in self._retrieve_new_incidents(ctx, last_sync_date):
            try:
                result = self.process_incident(ctx, incident, changes)
            except Exception as e:
                logger.error(
                    f"Error adding {product_name} incident IN{incident.incident_id} "
                    f"to {self.external_name}: {e}"
                )
                result = RecordResult(
                    SyncStatus.FAILED, str(e), internal_id=incident.incident_id
                )
            self._record(stats, project_id, result, SyncDirection.INTERNAL_TO_EXTERNAL)

        added, removed = changes.flush(
            self.test_management,
            project_id,
            dss_id,
            add_order=(ArtifactType.INCIDENT, ArtifactType.RELEASE),
            remove_order=(ArtifactType.RELEASE,),
        )
        stats["mappings_added"] += added
        stats["mappings_removed"] += removed

        # Pick up the incidents phase 1 just mapped
        ctx = replace(
            ctx,
            incident_mappings=self.test_management.retrieve_artifact_mappings(
                project_id, dss_id, int(ArtifactType.INCIDENT)
            ),
        )

        # Phase 2: changed bugs come back as incidents
        filter_date = last_sync_date - timedelta(hours=self.config.time_offset_hours)
        if filter_date < MIN_EXTERNAL_FILTER_DATE:
            filter_date = MIN_EXTERNAL_FILTER_DATE

        bugs = self.bug_tracker.get_bugs_updated_since(external_project_id, filter_date)
        logger.info(
            f"Found {len(bugs)} {self.external_name} bugs changed since {filter_date} "
            f"in {external_project_id}"
        )

        changes = MappingChangeSet()
        for bug in bugs:
            try:
                result = self.process_external_bug(ctx, bug, changes)
            except Exception as e:
                logger.error(
                    f"Error inserting/updating {self.external_name} bug {bug.id} "
                    f"in {product_name}: {e}"
                )
                result = RecordResult(SyncStatus.FAILED, str(e), external_key=bug.id)
            self._record(stats, project_id, result, SyncDirection.EXTERNAL_TO_INTERNAL)

        added, removed = changes.flush(
            self.test_management,
            project_id,
            dss_id,
            add_order=(ArtifactType.RELEASE, ArtifactType.INCIDENT),
            remove_order=(),
        )
        stats["mappings_added"] += added
        stats["mappings_removed"] += removed

        logger.info(f"Project PR{project_id} synchronized: {stats}")
        return stats

    def _load_project_context(
        self,
        project: Project,
        external_project_id: str,
        product_name: str,
        users: UserMapper,
    ) -> ProjectContext:
        tm = self.test_management
        project_id = project.project_id
        dss_id = self.config.data_sync_system_id

        ctx = ProjectContext(
            project_id=project_id,
            external_project_id=external_project_id,
            product_name=product_name,
            users=users,
            severity_mappings=tm.retrieve_field_value_mappings(
                project_id, dss_id, int(ArtifactField.SEVERITY)
            ),
            priority_mappings=tm.retrieve_field_value_mappings(
                project_id, dss_id, int(ArtifactField.PRIORITY)
            ),
            status_mappings=tm.retrieve_field_value_mappings(
                project_id, dss_id, int(ArtifactField.STATUS)
            ),
            type_mappings=tm.retrieve_field_value_mappings(
                project_id, dss_id, int(ArtifactField.TYPE)
            ),
            incident_mappings=tm.retrieve_artifact_mappings(
                project_id, dss_id, int(ArtifactType.INCIDENT)
            ),
            release_mappings=tm.retrieve_artifact_mappings(
                project_id, dss_id, int(ArtifactType.RELEASE)
            ),
        )

        if project.project_template_id is not None:
            ctx.custom_properties = tm.retrieve_custom_properties(
                project.project_template_id, int(ArtifactType.INCIDENT)
            )
        for definition in ctx.custom_properties:
            cp_id = definition.custom_property_id
            if cp_id is None:
                continue
            ctx.property_mappings[cp_id] = tm.retrieve_custom_property_mapping(
                project_id, dss_id, int(ArtifactType.INCIDENT), cp_id
            )
            if custom_fields.is_list_type(definition):
                ctx.value_mappings[cp_id] = tm.retrieve_custom_property_value_mappings(
                    project_id, dss_id, int(ArtifactType.INCIDENT), cp_id
                )
        return ctx

    def _retrieve_new_incidents(
        self, ctx: ProjectContext, last_sync_date: datetime
    ) -> List[Incident]:
        """New incidents since the last sync, fetched page by page"""
        page_size = self.config.incident_page_size
        count = self.test_management.count_incidents(ctx.project_id)
        incidents: List[Incident] = []
        for start_row in range(1, count + 1, page_size):
            incidents.extend(
                self.test_management.retrieve_new_incidents(
                    ctx.project_id, last_sync_date, start_row, page_size
                )
                or []
            )
        logger.info(
            f"Found {len(incidents)} new incidents in {ctx.product_name} project PR{ctx.project_id}"
        )
        return incidents

    # Internal -> external

    def process_incident(
        self, ctx: ProjectContext, incident: Incident, changes: MappingChangeSet
    ) -> RecordResult:
        """Create an external bug for an incident that has none yet"""
        tm = self.test_management
        project_id = ctx.project_id
        incident_id = incident.incident_id

        if find_by_internal_id(project_id, incident_id, ctx.incident_mappings) is not None:
            return RecordResult(SyncStatus.SKIPPED, "Already synchronized", internal_id=incident_id)

        self._trace(f"Processing {ctx.product_name} incident IN{incident_id}")

        base_url = tm.get_web_server_url()
        incident_url = tm.get_artifact_url(
            int(ArtifactType.INCIDENT), project_id, incident_id
        ).replace("~", base_url)
        description_html = incident.description or ""

        associations = tm.retrieve_associations(project_id, int(ArtifactType.INCIDENT), incident_id)
        documents = tm.retrieve_documents(project_id, int(ArtifactType.INCIDENT), incident_id)

        status_mapping = find_by_internal_id(
            project_id, incident.incident_status_id, ctx.status_mappings
        )
        if status_mapping is None:
            logger.error(
                f"Unable to locate mapping entry for incident status "
                f"{incident.incident_status_id} in project PR{project_id}"
            )
            return RecordResult(SyncStatus.SKIPPED, "Unmapped status", internal_id=incident_id)

        type_mapping = find_by_internal_id(project_id, incident.incident_type_id, ctx.type_mappings)
        if type_mapping is None:
            logger.error(
                f"Unable to locate mapping entry for incident type "
                f"{incident.incident_type_id} in project PR{project_id}"
            )
            return RecordResult(SyncStatus.SKIPPED, "Unmapped type", internal_id=incident_id)

        external_priority = ""
        if incident.priority_id is not None:
            mapping = find_by_internal_id(project_id, incident.priority_id, ctx.priority_mappings)
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for incident priority "
                    f"{incident.priority_id} in project PR{project_id}"
                )
            else:
                external_priority = mapping.external_key

        external_severity = ""
        if incident.severity_id is not None:
            mapping = find_by_internal_id(project_id, incident.severity_id, ctx.severity_mappings)
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for incident severity "
                    f"{incident.severity_id} in project PR{project_id}"
                )
            else:
                external_severity = mapping.external_key

        external_reporter = ""
        if incident.opener_id is not None:
            mapping = ctx.users.by_internal_id(incident.opener_id)
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for user id {incident.opener_id} "
                    f"so using synchronization user"
                )
            else:
                external_reporter = mapping.external_key

        external_assignee = ""
        if incident.owner_id is not None:
            mapping = ctx.users.by_internal_id(incident.owner_id)
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for user id {incident.owner_id} "
                    f"so leaving the assignee unset"
                )
            else:
                external_assignee = mapping.external_key

        detected_release = self._external_release(
            ctx, incident.detected_release_id, "detected", changes
        )
        resolved_release = self._external_release(
            ctx, incident.resolved_release_id, "resolved", changes
        )

        draft = ExternalBugDraft(
            project_id=ctx.external_project_id,
            name=incident.name,
            description_html=description_html,
            description_text=html_to_plain_text(description_html),
            status=status_mapping.external_key,
            type=type_mapping.external_key,
            priority=external_priority,
            severity=external_severity,
            reporter=external_reporter,
            assignee=external_assignee,
            detected_release=detected_release,
            resolved_release=resolved_release,
            custom_fields=custom_fields.to_external(
                project_id, incident, ctx.property_mappings, ctx.value_mappings, ctx.users
            ),
            creation_date=incident.creation_date,
            last_update_date=incident.last_update_date,
            start_date=incident.start_date,
            closed_date=incident.closed_date,
            estimated_effort_minutes=incident.estimated_effort,
            actual_effort_minutes=incident.actual_effort,
            projected_effort_minutes=incident.projected_effort,
            remaining_effort_minutes=incident.remaining_effort,
            completion_percent=incident.completion_percent,
            internal_url=incident_url,
        )

        external_bug_id = self.bug_tracker.create_bug(draft)
        changes.add(
            ArtifactType.INCIDENT,
            DataMapping(project_id=project_id, internal_id=incident_id, external_key=external_bug_id),
        )
        logger.info(
            f"Created {self.external_name} bug {external_bug_id} from "
            f"{ctx.product_name} incident IN{incident_id}"
        )

        self._add_back_link(project_id, incident_id, external_bug_id)

        for comment in tm.retrieve_incident_comments(project_id, incident_id) or []:
            author = ""
            if comment.user_id is not None:
                mapping = find_by_internal_id_global(comment.user_id, ctx.users.user_mappings)
                if mapping is None:
                    logger.warning(
                        f"Unable to locate mapping entry for comment author "
                        f"{comment.user_id} so using synchronization user"
                    )
                else:
                    author = mapping.external_key
            self.bug_tracker.add_comment(
                external_bug_id, comment.text, author, comment.creation_date
            )

        for document in documents or []:
            try:
                if document.attachment_type_id == AttachmentType.FILE:
                    data = tm.open_document(project_id, document.attachment_id)
                    if data:
                        self.bug_tracker.add_attachment(
                            external_bug_id,
                            document.filename_or_url,
                            document.description,
                            data,
                        )
                elif document.attachment_type_id == AttachmentType.URL:
                    self.bug_tracker.add_link(
                        external_bug_id, document.filename_or_url, document.description
                    )
            except Exception as e:
                logger.error(
                    f"Error adding {ctx.product_name} incident attachment "
                    f"DC{document.attachment_id} to {self.external_name}: {e} "
                    f"(the bug itself was added)"
                )

        for association in associations or []:
            if association.dest_artifact_type_id != ArtifactType.INCIDENT:
                continue
            mapping = find_by_internal_id_global(association.dest_artifact_id, ctx.incident_mappings)
            if mapping is None:
                continue
            try:
                self.bug_tracker.link_bugs(external_bug_id, mapping.external_key)
            except Exception as e:
                logger.warning(
                    f"Unable to link {self.external_name} bug {external_bug_id} "
                    f"to {mapping.external_key}: {e}"
                )

        return RecordResult(
            SyncStatus.SUCCESS, internal_id=incident_id, external_key=external_bug_id
        )

    def _external_release(
        self,
        ctx: ProjectContext,
        release_id: Optional[int],
        label: str,
        changes: MappingChangeSet,
    ) -> str:
        """External key for a release, creating it externally when unmapped.

        Returns "" when the release can't be resolved in the external system.
        """
        if release_id is None:
            return ""
        project_id = ctx.project_id

        mapping = find_by_internal_id(project_id, release_id, ctx.release_mappings)
        if mapping is None:
            mapping = find_by_internal_id(
                project_id, release_id, changes.new[ArtifactType.RELEASE]
            )

        if mapping is None:
            self._trace(f"Adding new release in {self.external_name} for RL{release_id}")
            release = self.test_management.get_release(project_id, release_id)
            if release is None:
                logger.warning(f"Unable to retrieve release RL{release_id} in project PR{project_id}")
                return ""
            external_release = self.bug_tracker.create_release(ctx.external_project_id, release)
            changes.add(
                ArtifactType.RELEASE,
                DataMapping(project_id=project_id, internal_id=release_id, external_key=external_release),
            )
        else:
            external_release = mapping.external_key

        self._trace(f"Looking for {self.external_name} {label} release: {external_release}")
        if self.bug_tracker.release_exists(ctx.external_project_id, external_release):
            return external_release

        logger.warning(
            f"Unable to locate {self.external_name} {label} release {external_release} "
            f"in project {ctx.external_project_id}"
        )
        changes.remove(
            ArtifactType.RELEASE,
            DataMapping(project_id=project_id, internal_id=release_id, external_key=external_release),
        )
        return ""

    def _add_back_link(self, project_id: int, incident_id: int, external_bug_id: str):
        url = self.config.external_bug_link(external_bug_id)
        if not url:
            return
        try:
            self.test_management.add_url_document(
                project_id,
                int(ArtifactType.INCIDENT),
                incident_id,
                url,
                f"Link to bug in {self.external_name}",
            )
        except Exception as e:
            logger.warning(
                f"Unable to add {self.external_name} link to incident IN{incident_id}: {e}"
            )

    # External -> internal

    def process_external_bug(
        self, ctx: ProjectContext, bug: ExternalBug, changes: MappingChangeSet
    ) -> RecordResult:
        """Create or update the incident for a changed external bug"""
        tm = self.test_management
        project_id = ctx.project_id

        if bug.project_id != ctx.external_project_id:
            return RecordResult(SyncStatus.SKIPPED, "Different project", external_key=bug.id)

        self._trace(f"Processing {self.external_name} bug {bug.id}")

        incident_mapping = find_by_external_key(
            project_id, bug.id, ctx.incident_mappings, only_primary=False
        )
        if incident_mapping is None:
            incident_id = None
            incident = Incident(
                project_id=project_id,
                name=bug.name or DEFAULT_INCIDENT_NAME,
                description=bug.description or DEFAULT_INCIDENT_DESCRIPTION,
            )
            if bug.creator:
                mapping = ctx.users.by_external_key(bug.creator)
                if mapping is None:
                    logger.error(
                        f"Unable to locate mapping entry for {self.external_name} user "
                        f"{bug.creator} so using synchronization user as detector"
                    )
                else:
                    incident.opener_id = mapping.internal_id
        else:
            incident_id = incident_mapping.internal_id
            try:
                incident = tm.get_incident(project_id, incident_id)
            except Exception as e:
                logger.error(
                    f"Unable to retrieve {ctx.product_name} incident IN{incident_id} "
                    f"for {self.external_name} bug {bug.id}: {e}"
                )
                return RecordResult(
                    SyncStatus.FAILED, str(e), internal_id=incident_id, external_key=bug.id
                )
            if bug.name:
                incident.name = bug.name
            if bug.description:
                incident.description = bug.description

        if not bug.priority:
            incident.priority_id = None
        else:
            mapping = find_by_external_key(
                project_id, bug.priority, ctx.priority_mappings, only_primary=True
            )
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for {self.external_name} "
                    f"priority {bug.priority} in project PR{project_id}"
                )
            else:
                incident.priority_id = mapping.internal_id

        if not bug.severity:
            incident.severity_id = None
        else:
            mapping = find_by_external_key(
                project_id, bug.severity, ctx.severity_mappings, only_primary=True
            )
            if mapping is None:
                logger.warning(
                    f"Unable to locate mapping entry for {self.external_name} "
                    f"severity {bug.severity} in project PR{project_id}"
                )
            else:
                incident.severity_id = mapping.internal_id

        if bug.status:
            mapping = find_by_external_key(
                project_id, bug.status, ctx.status_mappings, only_primary=True
            )
            if mapping is None:
                logger.error(
                    f"Unable to locate mapping entry for {self.external_name} "
                    f"status {bug.status} in project PR{project_id}"
                )
            else:
                incident.incident_status_id = mapping.internal_id

        if bug.type:
            mapping = find_by_external_key(
                project_id, bug.type, ctx.type_mappings, only_primary=True
            )
            if mapping is None:
                logger.error(
                    f"Unable to locate mapping entry for {self.external_name} "
                    f"type {bug.type} in project PR{project_id}"
                )
                if incident_id is None:
                    return RecordResult(SyncStatus.SKIPPED, "Unmapped type", external_key=bug.id)
            else:
                incident.incident_type_id = mapping.internal_id

        if bug.assignee:
            mapping = ctx.users.by_external_key(bug.assignee)
            if mapping is None:
                logger.error(
                    f"Unable to locate mapping entry for {self.external_name} user "
                    f"{bug.assignee} so ignoring the assignee change"
                )
            else:
                incident.owner_id = mapping.internal_id

        if bug.start_date is not None:
            incident.start_date = bug.start_date
        if bug.closed_date is not None:
            incident.closed_date = bug.closed_date
        if bug.estimated_effort_minutes is not None:
            incident.estimated_effort = bug.estimated_effort_minutes
        if bug.actual_effort_minutes is not None:
            incident.actual_effort = bug.actual_effort_minutes
        if bug.remaining_effort_minutes is not None:
            incident.remaining_effort = bug.remaining_effort_minutes

        new_comments = self._new_comments(ctx, bug, incident_id)

        if bug.detected_release:
            incident.detected_release_id = self._internal_release(
                ctx, bug.detected_release, incident, changes
            )
        if bug.resolved_release:
            incident.resolved_release_id = self._internal_release(
                ctx, bug.resolved_release, incident, changes
            )

        custom_fields.to_internal(
            project_id,
            incident,
            bug.custom_fields,
            ctx.custom_properties,
            ctx.property_mappings,
            ctx.value_mappings,
            ctx.users,
        )

        if incident_id is None:
            created = tm.create_incident(incident)
            incident_id = created.incident_id
            changes.add(
                ArtifactType.INCIDENT,
                DataMapping(project_id=project_id, internal_id=incident_id, external_key=bug.id),
            )
            for comment in new_comments:
                comment.artifact_id = incident_id
            if new_comments:
                tm.add_incident_comments(project_id, new_comments)
            self._add_back_link(project_id, incident_id, bug.id)
            logger.info(
                f"Created {ctx.product_name} incident IN{incident_id} from "
                f"{self.external_name} bug {bug.id}"
            )
        else:
            tm.update_incident(incident)
            if new_comments:
                tm.add_incident_comments(project_id, new_comments)
            logger.info(
                f"Updated {ctx.product_name} incident IN{incident_id} from "
                f"{self.external_name} bug {bug.id}"
            )

        return RecordResult(SyncStatus.SUCCESS, internal_id=incident_id, external_key=bug.id)

    def _new_comments(
        self, ctx: ProjectContext, bug: ExternalBug, incident_id: Optional[int]
    ) -> List[Comment]:
        """External comments not yet on the incident (compared by trimmed text)"""
        existing = []
        if incident_id is not None:
            existing = self.test_management.retrieve_incident_comments(ctx.project_id, incident_id)
        seen = {(c.text or "").strip() for c in existing or []}

        comments: List[Comment] = []
        for external_comment in self.bug_tracker.get_comments(bug.id) or []:
            text = (external_comment.text or "").strip()
            if text in seen:
                continue
            user_id = None
            if external_comment.creator:
                mapping = find_by_external_key_global(
                    external_comment.creator, ctx.users.user_mappings
                )
                if mapping is None:
                    logger.warning(
                        f"Unable to locate mapping entry for {self.external_name} user "
                        f"{external_comment.creator} so using synchronization user"
                    )
                else:
                    user_id = mapping.internal_id

            comments.append(
                Comment(
                    text=external_comment.text,
                    artifact_id=incident_id,
                    user_id=user_id,
                    creation_date=external_comment.creation_date or self._utcnow(),
                )
            )
        return comments

    def _internal_release(
        self,
        ctx: ProjectContext,
        external_key: str,
        incident: Incident,
        changes: MappingChangeSet,
    ) -> int:
        """Release id for an external version, creating the release when unmapped"""
        project_id = ctx.project_id
        mapping = find_by_external_key(
            project_id, external_key, ctx.release_mappings, only_primary=False
        )
        if mapping is None:
            mapping = changes.find_new_by_external_key(project_id, ArtifactType.RELEASE, external_key)
        if mapping is not None:
            return mapping.internal_id

        self._trace(f"Adding new release in {ctx.product_name} for version {external_key}")
        external = self.bug_tracker.get_release(ctx.external_project_id, external_key)
        now = self._utcnow()

        name = external_key
        version_number = external_key
        start_date = now
        end_date = now + timedelta(days=DEFAULT_RELEASE_DAYS)
        if external is not None:
            name = external.name or name
            version_number = external.version_number or version_number
            start_date = external.start_date or start_date
            end_date = external.end_date or end_date

        release = Release(
            project_id=project_id,
            name=name,
            version_number=version_number[:MAX_VERSION_NUMBER_LENGTH],
            active=True,
            start_date=start_date,
            end_date=end_date,
            creator_id=incident.opener_id,
            creation_date=now,
            resource_count=1,
            days_non_working=0,
        )
        created = self.test_management.create_release(release)
        changes.add(
            ArtifactType.RELEASE,
            DataMapping(project_id=project_id, internal_id=created.release_id, external_key=external_key),
        )
        logger.info(
            f"Created {ctx.product_name} release RL{created.release_id} for "
            f"{self.external_name} version {external_key}"
        )
        return created.release_id
