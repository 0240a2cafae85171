"""Translation of field values between the two systems using the mapping tables.

Lookups never raise for a missing or malformed mapping; they return one of
`Found`, `NotFound` or `NotNumeric` and leave the policy to the caller.
"""

import enum
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union

from incident_sync.constants import (
    CUSTOM_PROPERTY_SLOTS,
    SPECIAL_FIELD_AREA,
    SPECIAL_FIELD_COMPUTER,
    SPECIAL_FIELD_VERSION,
    CustomPropertyType,
)
from incident_sync.services.entities import CustomPropertySlots, DataMapping


@dataclass(frozen=True)
class Found:
    value: int
    mapping: Optional[DataMapping] = None


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class NotNumeric:
    raw: str
    mapping: Optional[DataMapping] = None


Resolution = Union[Found, NotFound, NotNumeric]

NOT_FOUND = NotFound()


class Direction(str, enum.Enum):
    TO_EXTERNAL = "to_external"
    TO_INTERNAL = "to_internal"


def find_mapping_by_internal_id(
    mappings: Iterable[DataMapping], internal_id: int, project_id: Optional[int] = None
) -> Optional[DataMapping]:
    """Find a mapping row by internal id (and project, when given)."""
    for mapping in mappings:
        if mapping.internal_id != internal_id:
            continue
        if project_id is not None and mapping.project_id != project_id:
            continue
        return mapping
    return None


def find_mapping_by_external_key(
    mappings: Iterable[DataMapping],
    external_key: str,
    project_id: Optional[int] = None,
    primary_only: bool = False,
) -> Optional[DataMapping]:
    """Find a mapping row by external key (and project, when given)."""
    for mapping in mappings:
        if mapping.external_key != external_key:
            continue
        if project_id is not None and mapping.project_id != project_id:
            continue
        if primary_only and not mapping.is_primary:
            continue
        return mapping
    return None


def parse_external_id(raw: Optional[str]) -> Resolution:
    """Parse an external key that stands for a numeric remote id."""
    try:
        return Found(int(str(raw).strip()))
    except (TypeError, ValueError):
        return NotNumeric(raw="" if raw is None else str(raw))


def resolve(
    direction: Direction,
    mappings: Iterable[DataMapping],
    value,
    project_id: Optional[int] = None,
    primary_only: Optional[bool] = None,
) -> Resolution:
    """Translate a single value through a mapping table.

    TO_EXTERNAL looks up the internal id (primary flag ignored) and parses the
    external key as a remote id. TO_INTERNAL looks up the external key, using
    primary rows only unless `primary_only=False`.
    """
    if direction == Direction.TO_EXTERNAL:
        mapping = find_mapping_by_internal_id(mappings, int(value), project_id)
        if mapping is None:
            return NOT_FOUND
        parsed = parse_external_id(mapping.external_key)
        if isinstance(parsed, Found):
            return Found(parsed.value, mapping)
        return NotNumeric(parsed.raw, mapping)

    mapping = find_mapping_by_external_key(
        mappings,
        str(value),
        project_id,
        primary_only=True if primary_only is None else primary_only,
    )
    if mapping is None:
        return NOT_FOUND
    return Found(mapping.internal_id, mapping)


def to_external(mappings, internal_id: int, project_id: Optional[int] = None) -> Resolution:
    return resolve(Direction.TO_EXTERNAL, mappings, internal_id, project_id)


def to_internal(
    mappings, external_key, project_id: Optional[int] = None, primary_only: bool = True
) -> Resolution:
    return resolve(Direction.TO_INTERNAL, mappings, external_key, project_id, primary_only)


# Remote scalar fields that replace a generic custom property
@dataclass(frozen=True)
class SpecialField:
    case_attribute: str
    property_type: CustomPropertyType


SPECIAL_FIELDS: Dict[str, SpecialField] = {
    SPECIAL_FIELD_AREA: SpecialField("area", CustomPropertyType.LIST),
    SPECIAL_FIELD_VERSION: SpecialField("version", CustomPropertyType.TEXT),
    SPECIAL_FIELD_COMPUTER: SpecialField("computer", CustomPropertyType.TEXT),
}


def special_field_for(alias: Optional[str], property_type: CustomPropertyType) -> Optional[SpecialField]:
    """Return the special remote field an alias targets, if the property kind matches."""
    if not alias:
        return None
    special = SPECIAL_FIELDS.get(alias)
    if special is None or special.property_type != property_type:
        return None
    return special


_SLOT_NAME_RE = re.compile(r"^(?P<kind>TEXT|LIST)_(?P<num>\d{2})$")


def slot_for_name(name: str) -> Optional[Tuple[CustomPropertyType, int]]:
    """Map an external slot name such as "LIST_03" to (kind, zero-based index)."""
    m = _SLOT_NAME_RE.match(name or "")
    if not m:
        return None
    index = int(m.group("num")) - 1
    if index < 0 or index >= CUSTOM_PROPERTY_SLOTS:
        return None
    kind = CustomPropertyType.TEXT if m.group("kind") == "TEXT" else CustomPropertyType.LIST
    return kind, index


def slot_name(kind: CustomPropertyType, index: int) -> str:
    prefix = "TEXT" if kind == CustomPropertyType.TEXT else "LIST"
    return f"{prefix}_{index + 1:02d}"


def get_custom_value(slots: CustomPropertySlots, name: str):
    slot = slot_for_name(name)
    if slot is None:
        return None
    kind, index = slot
    values = slots.text if kind == CustomPropertyType.TEXT else slots.list
    return values[index]


def set_custom_value(slots: CustomPropertySlots, name: str, value) -> bool:
    """Set a slot by external name; returns False for an unknown name."""
    slot = slot_for_name(name)
    if slot is None:
        return False
    kind, index = slot
    if kind == CustomPropertyType.TEXT:
        slots.text[index] = value
    else:
        slots.list[index] = value
    return True
