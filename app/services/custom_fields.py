"""Custom property translation between incidents and external bug fields"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.constants import CustomPropertyType
from app.models.artifacts import ArtifactCustomProperty, CustomProperty, Incident
from app.models.data_mapping import DataMapping
from app.services.mapping_resolver import find_by_external_key, find_by_internal_id
from app.services.user_mapping import UserMapper

logger = logging.getLogger(__name__)

_LIST_TYPES = (CustomPropertyType.LIST, CustomPropertyType.MULTI_LIST)


def is_list_type(custom_property: CustomProperty) -> bool:
    return custom_property.custom_property_type_id in [int(t) for t in _LIST_TYPES]


def get_custom_property_value(acp: ArtifactCustomProperty) -> Any:
    """Return whichever typed value is set on the slot (None if none)."""
    if acp.integer_list_value:
        return list(acp.integer_list_value)
    for value in (
        acp.string_value,
        acp.integer_value,
        acp.boolean_value,
        acp.date_time_value,
        acp.decimal_value,
    ):
        if value is not None and value != "":
            return value
    return None


def _slot(artifact: Incident, property_number: int) -> ArtifactCustomProperty:
    for acp in artifact.custom_properties:
        if acp.property_number == property_number:
            return acp
    acp = ArtifactCustomProperty(property_number=property_number)
    artifact.custom_properties.append(acp)
    return acp


def set_custom_property_value(artifact: Incident, property_number: int, value: Any) -> None:
    """Set a custom property value, storing it in the field matching its type.

    Passing None clears every typed field on the slot.
    """
    acp = _slot(artifact, property_number)
    acp.string_value = None
    acp.integer_value = None
    acp.boolean_value = None
    acp.date_time_value = None
    acp.decimal_value = None
    acp.integer_list_value = None

    if value is None:
        return
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        acp.boolean_value = value
    elif isinstance(value, int):
        acp.integer_value = value
    elif isinstance(value, Decimal):
        acp.decimal_value = value
    elif isinstance(value, datetime):
        acp.date_time_value = value
    elif isinstance(value, (list, tuple)):
        acp.integer_list_value = [int(v) for v in value]
    else:
        acp.string_value = str(value)


def to_external(
    project_id: int,
    incident: Incident,
    property_mappings: Dict[int, Optional[DataMapping]],
    value_mappings: Dict[int, List[DataMapping]],
    users: UserMapper,
) -> Dict[str, Any]:
    """Translate an incident's custom properties into external field values.

    `property_mappings` maps custom property id to the external field
    mapping; `value_mappings` maps custom property id to the value mappings
    of list-type properties.
    """
    values: Dict[str, Any] = {}
    for acp in incident.custom_properties or []:
        definition = acp.definition
        if definition is None or definition.custom_property_id is None:
            continue
        cp_id = definition.custom_property_id
        field_mapping = property_mappings.get(cp_id)
        type_id = definition.custom_property_type_id

        if type_id == CustomPropertyType.LIST:
            logger.debug(f"Checking list custom property: {definition.name}")
            if acp.integer_value is None or not field_mapping or not field_mapping.external_key:
                continue
            value_mapping = find_by_internal_id(
                project_id, acp.integer_value, value_mappings.get(cp_id) or []
            )
            if value_mapping is not None and value_mapping.external_key:
                values[field_mapping.external_key] = value_mapping.external_key

        elif type_id == CustomPropertyType.MULTI_LIST:
            logger.debug(f"Checking multi-list custom property: {definition.name}")
            if not acp.integer_list_value or not field_mapping or not field_mapping.external_key:
                continue
            mapped = []
            for list_value in acp.integer_list_value:
                value_mapping = find_by_internal_id(
                    project_id, list_value, value_mappings.get(cp_id) or []
                )
                if value_mapping is not None:
                    mapped.append(value_mapping.external_key)
            logger.debug(
                f"Got mapped values for multi-list custom property: {definition.name} "
                f"(Count={len(mapped)})"
            )
            values[field_mapping.external_key] = mapped or None

        elif type_id == CustomPropertyType.USER:
            logger.debug(f"Checking user custom property: {definition.name}")
            if acp.integer_value is None or not field_mapping or not field_mapping.external_key:
                continue
            user_mapping = users.by_internal_id(acp.integer_value)
            if user_mapping is None:
                logger.warning(
                    f"Unable to find a matching external user for user id "
                    f"{acp.integer_value} so leaving property {definition.name} null"
                )
                continue
            values[field_mapping.external_key] = user_mapping.external_key

        else:
            logger.debug(f"Checking non-list custom property: {definition.name}")
            value = get_custom_property_value(acp)
            if value is None or value == "":
                continue
            if field_mapping and field_mapping.external_key:
                values[field_mapping.external_key] = value

    return values


def _typed_value(type_id: int, raw: Any) -> Any:
    """Coerce an external scalar for a non-list property; None if it doesn't fit."""
    if raw is None:
        return None
    if type_id == CustomPropertyType.BOOLEAN:
        return raw if isinstance(raw, bool) else None
    if type_id == CustomPropertyType.DATE:
        if not isinstance(raw, datetime):
            return None
        if raw.tzinfo is None:
            return raw
        return raw.astimezone(timezone.utc).replace(tzinfo=None)
    if type_id == CustomPropertyType.DECIMAL:
        return raw if isinstance(raw, Decimal) else None
    if type_id == CustomPropertyType.INTEGER:
        return raw if isinstance(raw, int) and not isinstance(raw, bool) else None
    return str(raw)


def to_internal(
    project_id: int,
    artifact: Incident,
    external_values: Dict[str, Any],
    custom_properties: List[CustomProperty],
    property_mappings: Dict[int, Optional[DataMapping]],
    value_mappings: Dict[int, List[DataMapping]],
    users: UserMapper,
) -> None:
    """Apply external field values to the artifact's custom properties."""
    external_values = external_values or {}
    for definition in custom_properties:
        cp_id = definition.custom_property_id
        if cp_id is None:
            continue
        field_mapping = property_mappings.get(cp_id)
        if field_mapping is None:
            continue

        external_key = field_mapping.external_key
        if external_key not in external_values:
            logger.warning(f"External bug doesn't have a field definition for '{external_key}'")
            continue

        raw = external_values[external_key]
        type_id = definition.custom_property_type_id
        number = definition.property_number

        if raw is None:
            set_custom_property_value(artifact, number, None)
            continue

        if type_id == CustomPropertyType.LIST:
            value_mapping = find_by_external_key(
                project_id, str(raw), value_mappings.get(cp_id) or [], only_primary=False
            )
            if value_mapping is not None:
                set_custom_property_value(artifact, number, value_mapping.internal_id)

        elif type_id == CustomPropertyType.USER:
            user_mapping = users.by_external_key(str(raw))
            if user_mapping is not None:
                set_custom_property_value(artifact, number, user_mapping.internal_id)

        elif type_id == CustomPropertyType.MULTI_LIST:
            if not isinstance(raw, (list, tuple)):
                logger.warning(
                    f"Expected a list for multi-list field '{external_key}', "
                    f"got {type(raw).__name__}; clearing the property"
                )
                set_custom_property_value(artifact, number, None)
                continue
            ids = []
            for item in raw:
                value_mapping = find_by_external_key(
                    project_id, str(item), value_mappings.get(cp_id) or [], only_primary=False
                )
                if value_mapping is not None:
                    ids.append(value_mapping.internal_id)
            set_custom_property_value(artifact, number, ids)

        else:
            value = _typed_value(type_id, raw)
            set_custom_property_value(artifact, number, value)
            if value is not None:
                logger.debug(f"Setting external field {external_key} value '{value}' on artifact")
