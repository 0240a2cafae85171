"""Records exchanged between the sync engine and the two systems"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from incident_sync.constants import CUSTOM_PROPERTY_SLOTS, CustomPropertyType


@dataclass
class DataMapping:
    """One internal id <-> external key correspondence.

    `project_id` is None for global tables (projects, users).
    Only primary rows are used when resolving an external key.
    """

    internal_id: int
    external_key: str
    project_id: Optional[int] = None
    is_primary: bool = False


@dataclass
class CustomPropertyDefinition:
    """A project-configured extra field on incidents"""

    custom_property_id: int
    name: str  # slot name, e.g. TEXT_01 or LIST_03
    property_type: CustomPropertyType
    alias: Optional[str] = None


def _empty_text_slots() -> List[Optional[str]]:
    return [None] * CUSTOM_PROPERTY_SLOTS


def _empty_list_slots() -> List[Optional[int]]:
    return [None] * CUSTOM_PROPERTY_SLOTS


@dataclass
class CustomPropertySlots:
    """Fixed generic custom property slots, indexed from zero"""

    text: List[Optional[str]] = field(default_factory=_empty_text_slots)
    list: List[Optional[int]] = field(default_factory=_empty_list_slots)


@dataclass
class Incident:
    """Incident held by the local system"""

    incident_id: Optional[int] = None
    project_id: Optional[int] = None
    name: str = ""
    description: str = ""
    incident_status_id: Optional[int] = None
    incident_type_id: Optional[int] = None
    priority_id: Optional[int] = None
    severity_id: Optional[int] = None
    opener_id: Optional[int] = None
    opener_name: Optional[str] = None
    owner_id: Optional[int] = None
    detected_release_id: Optional[int] = None
    detected_release_version_number: Optional[str] = None
    resolved_release_id: Optional[int] = None
    resolved_release_version_number: Optional[str] = None
    estimated_effort: Optional[int] = None  # minutes
    start_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    creation_date: Optional[datetime] = None
    last_update_date: Optional[datetime] = None
    custom_properties: CustomPropertySlots = field(default_factory=CustomPropertySlots)


@dataclass
class IncidentResolution:
    """Comment attached to a local incident"""

    incident_id: Optional[int]
    creator_id: int
    creation_date: datetime
    resolution: str


@dataclass
class Release:
    """Release held by the local system"""

    release_id: Optional[int] = None
    name: str = ""
    version_number: str = ""
    active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    creator_id: Optional[int] = None
    creation_date: Optional[datetime] = None
    resource_count: int = 1
    days_non_working: int = 0


@dataclass
class Case:
    """Case held by the remote system.

    `description` can only be set when the case is created; afterwards the
    remote system reports its latest comment text in this field.
    """

    case_id: Optional[int] = None
    project: Optional[int] = None
    title: str = ""
    description: str = ""
    status: Optional[int] = None
    category: Optional[int] = None
    priority: Optional[int] = None
    person_assigned_to: Optional[int] = None
    person_opened_by: Optional[int] = None
    fix_for: Optional[int] = None
    area: Optional[int] = None
    version: str = ""
    computer: str = ""
    due: Optional[datetime] = None
    hours_estimate: Optional[int] = None
    closed: Optional[datetime] = None
    last_updated: Optional[datetime] = None


@dataclass
class Milestone:
    """Remote release ("FixFor")"""

    milestone_id: Optional[int] = None
    project: Optional[int] = None
    name: str = ""
    release_date: Optional[datetime] = None
    assignable: bool = True
