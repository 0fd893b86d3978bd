"""Data mapping record"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DataMapping:
    """Correspondence between an internal id and an external key.

    `project_id` is None for mappings that are not scoped to a project
    (users). Records are never edited in place: a correction is an added
    mapping plus a removed one.
    """

    internal_id: int
    external_key: str
    project_id: Optional[int] = None
    is_primary: bool = False

    def __repr__(self):
        return (
            f"<DataMapping(project={self.project_id}, internal={self.internal_id}, "
            f"external='{self.external_key}', primary={self.is_primary})>"
        )
