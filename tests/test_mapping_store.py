import unittest
from unittest.mock import Mock


class MappingStoreTests(unittest.TestCase):
    def _store(self, result=None):
        from incident_sync.services.mapping_store import MappingStore

        client = Mock()
        client.request = Mock(return_value=result)
        return MappingStore(client, 12), client

    def test_reads_are_scoped_by_sync_system(self):
        from incident_sync.constants import ArtifactField, ArtifactType

        store, client = self._store([{"InternalId": 1, "ExternalKey": "10", "ProjectId": None, "Primary": True}])

        projects = store.get_project_mappings()
        store.get_user_mappings()
        store.get_field_mappings(ArtifactField.STATUS)
        store.get_artifact_mappings(ArtifactType.RELEASE)
        store.get_custom_property_value_mappings(ArtifactType.INCIDENT, 4)

        paths = [c.args[1] for c in client.request.call_args_list]
        self.assertEqual(
            paths,
            [
                "/data-mappings/12/projects",
                "/data-mappings/12/users",
                "/data-mappings/12/field-values/3",
                "/data-mappings/12/artifacts/4",
                "/data-mappings/12/custom-properties/3/4/values",
            ],
        )
        self.assertEqual(projects[0].internal_id, 1)
        self.assertEqual(projects[0].external_key, "10")
        self.assertTrue(projects[0].is_primary)

    def test_missing_custom_property_mapping(self):
        from incident_sync.constants import ArtifactType

        store, _ = self._store(None)

        self.assertIsNone(store.get_custom_property_mapping(ArtifactType.INCIDENT, 4))

    def test_add_and_remove_send_batches(self):
        from incident_sync.constants import ArtifactType
        from incident_sync.services.entities import DataMapping

        store, client = self._store()

        store.add_artifact_mappings(ArtifactType.INCIDENT, [DataMapping(7, "900", 1, True)])
        store.remove_artifact_mappings(ArtifactType.RELEASE, [DataMapping(42, "70", 1, True)])

        add_call, remove_call = client.request.call_args_list
        self.assertEqual(add_call.args, ("POST", "/data-mappings/12/artifacts/3"))
        self.assertEqual(
            add_call.kwargs["json"],
            [{"ProjectId": 1, "InternalId": 7, "ExternalKey": "900", "Primary": True}],
        )
        self.assertEqual(remove_call.args, ("DELETE", "/data-mappings/12/artifacts/4"))

    def test_empty_batches_make_no_call(self):
        from incident_sync.constants import ArtifactType

        store, client = self._store()

        store.add_artifact_mappings(ArtifactType.INCIDENT, [])
        store.remove_artifact_mappings(ArtifactType.RELEASE, [])

        client.request.assert_not_called()


if __name__ == "__main__":
    unittest.main()
