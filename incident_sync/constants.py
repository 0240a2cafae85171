"""Constants shared by the data-sync"""

import enum
from datetime import datetime

# Path of the incident details page relative to the local system's base URL
INCIDENT_DETAILS_PATH = "/IncidentDetails.aspx?incidentId="
INCIDENT_PREFIX = "IN"

# Prefix of the version number given to releases created from remote milestones
RELEASE_VERSION_PREFIX = "FB-"

# Watermark used on the very first pass
FIRST_SYNC_DATE = datetime(1900, 1, 1)

# Remote scalar fields a custom property can be mapped onto
SPECIAL_FIELD_AREA = "Area"
SPECIAL_FIELD_VERSION = "Version"
SPECIAL_FIELD_COMPUTER = "Computer"

# External key of the status mapping row used for closed cases
STATUS_KEY_CLOSED = "Closed"
# Remote user id that closed cases are assigned to
CLOSED_USER_ID = 1
CLOSED_CASE_STATUS = 0

CUSTOM_PROPERTY_SLOTS = 10


class ArtifactType(int, enum.Enum):
    """Artifact types used in the mapping repository"""
    INCIDENT = 3
    RELEASE = 4


class ArtifactField(int, enum.Enum):
    """Field-value mapping tables"""
    SEVERITY = 1
    PRIORITY = 2
    STATUS = 3
    TYPE = 4


class CustomPropertyType(int, enum.Enum):
    """Kinds of custom property"""
    TEXT = 1
    LIST = 2

# Display name of the remote system used in generated text
REMOTE_PRODUCT_NAME = "FogBugz"

DEFAULT_INCIDENT_NAME = "Untitled Incident"
