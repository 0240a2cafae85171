"""Client for the mapping repository hosted by the local system"""

import logging
from typing import Any, Dict, List, Optional

from incident_sync.constants import ArtifactField, ArtifactType
from incident_sync.services.entities import DataMapping
from incident_sync.services.spira_client import SpiraClient

logger = logging.getLogger(__name__)


def _mapping_from_json(data: Dict[str, Any]) -> DataMapping:
    return DataMapping(
        internal_id=int(data["InternalId"]),
        external_key=str(data.get("ExternalKey") or ""),
        project_id=data.get("ProjectId"),
        is_primary=bool(data.get("Primary", False)),
    )


def _mapping_to_json(mapping: DataMapping) -> Dict[str, Any]:
    return {
        "ProjectId": mapping.project_id,
        "InternalId": mapping.internal_id,
        "ExternalKey": mapping.external_key,
        "Primary": mapping.is_primary,
    }


class MappingStore:
    """Reads and appends id mappings for one sync system.

    All calls are scoped by `sync_system_id`. The repository ignores
    duplicate (project, internal id) rows on insert.
    """

    def __init__(self, client: SpiraClient, sync_system_id: int):
        self.client = client
        self.sync_system_id = int(sync_system_id)

    def _path(self, path: str) -> str:
        return f"/data-mappings/{self.sync_system_id}{path}"

    def _get_list(self, path: str) -> List[DataMapping]:
        data = self.client.request("GET", self._path(path))
        return [_mapping_from_json(item) for item in data or []]

    def get_project_mappings(self) -> List[DataMapping]:
        return self._get_list("/projects")

    def get_user_mappings(self) -> List[DataMapping]:
        return self._get_list("/users")

    def get_field_mappings(self, artifact_field: ArtifactField) -> List[DataMapping]:
        return self._get_list(f"/field-values/{int(artifact_field)}")

    def get_artifact_mappings(self, artifact_type: ArtifactType) -> List[DataMapping]:
        return self._get_list(f"/artifacts/{int(artifact_type)}")

    def get_custom_property_mapping(
        self, artifact_type: ArtifactType, custom_property_id: int
    ) -> Optional[DataMapping]:
        data = self.client.request(
            "GET",
            self._path(f"/custom-properties/{int(artifact_type)}/{int(custom_property_id)}"),
        )
        if not data:
            return None
        return _mapping_from_json(data)

    def get_custom_property_value_mappings(
        self, artifact_type: ArtifactType, custom_property_id: int
    ) -> List[DataMapping]:
        return self._get_list(
            f"/custom-properties/{int(artifact_type)}/{int(custom_property_id)}/values"
        )

    def add_artifact_mappings(self, artifact_type: ArtifactType, mappings: List[DataMapping]) -> None:
        if not mappings:
            return
        self.client.request(
            "POST",
            self._path(f"/artifacts/{int(artifact_type)}"),
            json=[_mapping_to_json(m) for m in mappings],
        )
        logger.info(f"Added {len(mappings)} {artifact_type.name.lower()} mapping(s)")

    def remove_artifact_mappings(self, artifact_type: ArtifactType, mappings: List[DataMapping]) -> None:
        if not mappings:
            return
        self.client.request(
            "DELETE",
            self._path(f"/artifacts/{int(artifact_type)}"),
            json=[_mapping_to_json(m) for m in mappings],
        )
        logger.info(f"Removed {len(mappings)} {artifact_type.name.lower()} mapping(s)")
