"""Local incident tracker REST client"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from incident_sync.constants import ArtifactType, CustomPropertyType
from incident_sync.services.entities import (
    CustomPropertyDefinition,
    CustomPropertySlots,
    Incident,
    IncidentResolution,
    Release,
)
from incident_sync.services.field_translator import slot_for_name, slot_name
from incident_sync.services.retry import with_retries

logger = logging.getLogger(__name__)

REST_SERVICE_SUFFIX = "/Services/v5_0/RestService.svc"

_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class SpiraApiError(RuntimeError):
    """Error returned by the local system's API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def format_date(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(_DATE_FORMAT) if value else None


def parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


class SpiraClient:
    """Wrapper for the local system's import/export operations.

    Credentials are sent with every request; `connect_to_project` scopes the
    project-level calls that follow.
    """

    def __init__(
        self,
        base_url: str,
        *,
        enable_keep_alives: bool = True,
        verify_certificate: bool = True,
        timeout: float = 1200,
        trace_logging: bool = False,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_url = self.base_url + REST_SERVICE_SUFFIX
        self.timeout = timeout
        self.trace_logging = trace_logging
        self.project_id: Optional[int] = None
        self.session = requests.Session()
        self.session.verify = verify_certificate
        self.session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if not enable_keep_alives:
            self.session.headers["Connection"] = "close"

    def request(self, method: str, path: str, *, json: Any = None, params: Optional[Dict] = None) -> Any:
        url = self.api_url + path
        if self.trace_logging:
            logger.debug(f"Request - {method} {url}")

        def _call():
            try:
                response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise SpiraApiError(f"Unable to reach {url}: {e}") from e
            if not response.ok:
                raise SpiraApiError(
                    f"HTTP {response.status_code} from {method} {path}: {response.text[:200]}",
                    response.status_code,
                )
            if not response.content:
                return None
            return response.json()

        return with_retries(_call)

    def _project_path(self, path: str) -> str:
        if self.project_id is None:
            raise SpiraApiError("You need to connect to a project before calling this method")
        return f"/projects/{self.project_id}{path}"

    # System

    def get_product_name(self) -> str:
        data = self.request("GET", "/system/product-name")
        return str(data or "SpiraTeam")

    def get_base_url(self) -> str:
        data = self.request("GET", "/system/web-server-url")
        return str(data or self.base_url).rstrip("/")

    def authenticate(self, login: str, password: str) -> bool:
        """Store the credentials and check that the API accepts them."""
        self.session.headers.update({"username": login or "", "api-key": password or ""})
        try:
            self.request("GET", "/users")
            return True
        except SpiraApiError as e:
            logger.error(f"Authentication with the local system failed: {e}")
            return False

    def connect_to_project(self, project_id: int) -> bool:
        try:
            self.request("GET", f"/projects/{int(project_id)}")
        except SpiraApiError as e:
            logger.error(f"Unable to connect to project {project_id}: {e}")
            return False
        self.project_id = int(project_id)
        return True

    # Incidents

    def get_new_incidents(self, since: datetime) -> List[Incident]:
        data = self.request(
            "GET",
            self._project_path("/incidents/new"),
            params={"creation_date": format_date(since)},
        )
        return [self._incident_from_json(item) for item in data or []]

    def get_incident(self, incident_id: int) -> Incident:
        data = self.request("GET", self._project_path(f"/incidents/{int(incident_id)}"))
        return self._incident_from_json(data)

    def create_incident(self, incident: Incident) -> Incident:
        data = self.request("POST", self._project_path("/incidents"), json=self._incident_to_json(incident))
        created = self._incident_from_json(data)
        logger.info(f"Created incident IN{created.incident_id} in project {self.project_id}")
        return created

    def update_incident(self, incident: Incident) -> None:
        self.request(
            "PUT",
            self._project_path(f"/incidents/{int(incident.incident_id)}"),
            json=self._incident_to_json(incident),
        )
        logger.info(f"Updated incident IN{incident.incident_id} in project {self.project_id}")

    def get_resolutions(self, incident_id: int) -> List[IncidentResolution]:
        data = self.request("GET", self._project_path(f"/incidents/{int(incident_id)}/comments"))
        return [
            IncidentResolution(
                incident_id=item.get("ArtifactId"),
                creator_id=item.get("UserId"),
                creation_date=parse_date(item.get("CreationDate")),
                resolution=item.get("Text") or "",
            )
            for item in data or []
        ]

    def add_resolutions(self, resolutions: List[IncidentResolution]) -> None:
        """Attach comments to their incidents (no call for an empty list)."""
        for resolution in resolutions:
            self.request(
                "POST",
                self._project_path(f"/incidents/{int(resolution.incident_id)}/comments"),
                json=[
                    {
                        "ArtifactId": resolution.incident_id,
                        "UserId": resolution.creator_id,
                        "CreationDate": format_date(resolution.creation_date),
                        "Text": resolution.resolution,
                    }
                ],
            )

    # Releases and custom properties

    def create_release(self, release: Release) -> Release:
        payload = {
            "Name": release.name,
            "VersionNumber": release.version_number,
            "Active": release.active,
            "StartDate": format_date(release.start_date),
            "EndDate": format_date(release.end_date),
            "CreatorId": release.creator_id,
            "CreationDate": format_date(release.creation_date),
            "ResourceCount": release.resource_count,
            "DaysNonWorking": release.days_non_working,
        }
        data = self.request("POST", self._project_path("/releases"), json=payload)
        release.release_id = int(data["ReleaseId"])
        logger.info(f"Created release '{release.name}' in project {self.project_id}")
        return release

    def get_custom_properties(self, artifact_type: ArtifactType) -> List[CustomPropertyDefinition]:
        data = self.request(
            "GET", self._project_path(f"/custom-properties/{int(artifact_type)}")
        )
        definitions = []
        for item in data or []:
            definitions.append(
                CustomPropertyDefinition(
                    custom_property_id=int(item["CustomPropertyId"]),
                    name=item["CustomPropertyName"],
                    property_type=CustomPropertyType(int(item["CustomPropertyTypeId"])),
                    alias=item.get("Alias"),
                )
            )
        return definitions

    # Serialization

    @staticmethod
    def _incident_from_json(data: Dict[str, Any]) -> Incident:
        slots = CustomPropertySlots()
        for name, value in data.items():
            slot = slot_for_name(name)
            if slot is None:
                continue
            kind, index = slot
            if kind == CustomPropertyType.TEXT:
                slots.text[index] = value
            else:
                slots.list[index] = int(value) if value is not None else None

        return Incident(
            incident_id=data.get("IncidentId"),
            project_id=data.get("ProjectId"),
            name=data.get("Name") or "",
            description=data.get("Description") or "",
            incident_status_id=data.get("IncidentStatusId"),
            incident_type_id=data.get("IncidentTypeId"),
            priority_id=data.get("PriorityId"),
            severity_id=data.get("SeverityId"),
            opener_id=data.get("OpenerId"),
            opener_name=data.get("OpenerName"),
            owner_id=data.get("OwnerId"),
            detected_release_id=data.get("DetectedReleaseId"),
            detected_release_version_number=data.get("DetectedReleaseVersionNumber"),
            resolved_release_id=data.get("ResolvedReleaseId"),
            resolved_release_version_number=data.get("ResolvedReleaseVersionNumber"),
            estimated_effort=data.get("EstimatedEffort"),
            start_date=parse_date(data.get("StartDate")),
            closed_date=parse_date(data.get("ClosedDate")),
            creation_date=parse_date(data.get("CreationDate")),
            last_update_date=parse_date(data.get("LastUpdateDate")),
            custom_properties=slots,
        )

    @staticmethod
    def _incident_to_json(incident: Incident) -> Dict[str, Any]:
        payload = {
            "IncidentId": incident.incident_id,
            "ProjectId": incident.project_id,
            "Name": incident.name,
            "Description": incident.description,
            "IncidentStatusId": incident.incident_status_id,
            "IncidentTypeId": incident.incident_type_id,
            "PriorityId": incident.priority_id,
            "SeverityId": incident.severity_id,
            "OpenerId": incident.opener_id,
            "OwnerId": incident.owner_id,
            "DetectedReleaseId": incident.detected_release_id,
            "ResolvedReleaseId": incident.resolved_release_id,
            "EstimatedEffort": incident.estimated_effort,
            "StartDate": format_date(incident.start_date),
            "ClosedDate": format_date(incident.closed_date),
            "CreationDate": format_date(incident.creation_date),
            "LastUpdateDate": format_date(incident.last_update_date),
        }
        for index, value in enumerate(incident.custom_properties.text):
            payload[slot_name(CustomPropertyType.TEXT, index)] = value
        for index, value in enumerate(incident.custom_properties.list):
            payload[slot_name(CustomPropertyType.LIST, index)] = value
        return payload
