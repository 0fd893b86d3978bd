"""Pending additions/removals to the server-side mapping tables"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from app.constants import ArtifactType
from app.models.data_mapping import DataMapping
from app.services.mapping_resolver import find_by_external_key
from app.services.test_management import TestManagementClient

logger = logging.getLogger(__name__)


class MappingChangeSet:
    """Mappings added or removed during one phase of a project pass.

    Nothing is written to the server until flush(); the fetched mapping
    snapshots stay untouched while the phase runs.
    """

    def __init__(self):
        self.new: Dict[ArtifactType, List[DataMapping]] = {t: [] for t in ArtifactType}
        self.old: Dict[ArtifactType, List[DataMapping]] = {t: [] for t in ArtifactType}

    def add(self, artifact_type: ArtifactType, mapping: DataMapping) -> None:
        self.new[artifact_type].append(mapping)

    def remove(self, artifact_type: ArtifactType, mapping: DataMapping) -> None:
        self.old[artifact_type].append(mapping)

    def find_new_by_external_key(
        self, project_id: int, artifact_type: ArtifactType, external_key: str
    ) -> Optional[DataMapping]:
        return find_by_external_key(
            project_id, external_key, self.new[artifact_type], only_primary=False
        )

    def is_empty(self) -> bool:
        return not any(self.new.values()) and not any(self.old.values())

    def flush(
        self,
        client: TestManagementClient,
        project_id: int,
        data_sync_system_id: int,
        *,
        add_order: Sequence[ArtifactType] = (ArtifactType.INCIDENT, ArtifactType.RELEASE),
        remove_order: Sequence[ArtifactType] = (ArtifactType.RELEASE,),
    ) -> Tuple[int, int]:
        """Push the pending changes as batch calls and reset.

        One add call is made per type in `add_order` and one remove call per
        type in `remove_order`, even when the batch is empty. Returns
        (added, removed) counts.
        """
        added = 0
        removed = 0
        for artifact_type in add_order:
            batch = list(self.new[artifact_type])
            client.add_artifact_mappings(project_id, data_sync_system_id, int(artifact_type), batch)
            added += len(batch)
        for artifact_type in remove_order:
            batch = list(self.old[artifact_type])
            client.remove_artifact_mappings(
                project_id, data_sync_system_id, int(artifact_type), batch
            )
            removed += len(batch)

        logger.info(
            f"Pushed mapping changes for project {project_id}: {added} added, {removed} removed"
        )
        self.new = {t: [] for t in ArtifactType}
        self.old = {t: [] for t in ArtifactType}
        return added, removed
