"""Lookups over data-mapping collections.

All lookups scan the collection in iteration order and return the first
matching record, or None. The collections are snapshots fetched once per
sync pass and may contain duplicates; nothing here de-duplicates, caches or
mutates them.

User mappings carry no project id; look them up with the `*_global`
functions.
"""

from typing import Iterable, Optional

from app.models.data_mapping import DataMapping


def find_by_internal_id(
    project_id: int, internal_id: int, mappings: Iterable[DataMapping]
) -> Optional[DataMapping]:
    """First mapping for `internal_id` within `project_id`."""
    for mapping in mappings:
        if mapping.internal_id == internal_id and mapping.project_id == project_id:
            return mapping
    return None


def find_by_internal_id_global(
    internal_id: int, mappings: Iterable[DataMapping]
) -> Optional[DataMapping]:
    """First mapping for `internal_id`, ignoring project scope."""
    for mapping in mappings:
        if mapping.internal_id == internal_id:
            return mapping
    return None


def find_by_external_key(
    project_id: int,
    external_key: str,
    mappings: Iterable[DataMapping],
    only_primary: bool,
) -> Optional[DataMapping]:
    """First mapping for `external_key` within `project_id`.

    With `only_primary`, non-primary matches are passed over; there is no
    fallback to them when no primary match exists.
    """
    for mapping in mappings:
        if mapping.external_key == external_key and mapping.project_id == project_id:
            if not only_primary or mapping.is_primary:
                return mapping
    return None


def find_by_external_key_global(
    external_key: str, mappings: Iterable[DataMapping]
) -> Optional[DataMapping]:
    """First mapping for `external_key`, ignoring project scope and primary flag."""
    for mapping in mappings:
        if mapping.external_key == external_key:
            return mapping
    return None
