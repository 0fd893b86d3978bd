import logging
import unittest

from app.constants import ArtifactType
from app.models.data_mapping import DataMapping
from app.services.mapping_changes import MappingChangeSet
from tests.fakes import FakeTestManagement

logging.disable(logging.CRITICAL)


class MappingChangeSetTests(unittest.TestCase):
    def test_flush_issues_batch_calls_in_order_and_resets(self):
        client = FakeTestManagement()
        changes = MappingChangeSet()
        changes.add(ArtifactType.RELEASE, DataMapping(project_id=1, internal_id=4, external_key="v1"))
        changes.add(ArtifactType.INCIDENT, DataMapping(project_id=1, internal_id=7, external_key="B-7"))
        changes.remove(ArtifactType.RELEASE, DataMapping(project_id=1, internal_id=5, external_key="v0"))

        added, removed = changes.flush(client, 1, 99)

        self.assertEqual((added, removed), (2, 1))
        self.assertEqual(
            client.calls,
            [
                ("add_artifact_mappings", ArtifactType.INCIDENT, 1),
                ("add_artifact_mappings", ArtifactType.RELEASE, 1),
                ("remove_artifact_mappings", ArtifactType.RELEASE, 1),
            ],
        )
        self.assertTrue(changes.is_empty())

    def test_flush_calls_even_when_empty(self):
        client = FakeTestManagement()
        changes = MappingChangeSet()

        self.assertEqual(changes.flush(client, 1, 99), (0, 0))
        self.assertEqual(len(client.calls), 3)

    def test_custom_order(self):
        client = FakeTestManagement()
        changes = MappingChangeSet()

        changes.flush(
            client,
            1,
            99,
            add_order=(ArtifactType.RELEASE, ArtifactType.INCIDENT),
            remove_order=(),
        )

        self.assertEqual(
            [c[1] for c in client.calls],
            [ArtifactType.RELEASE, ArtifactType.INCIDENT],
        )

    def test_find_new_by_external_key_ignores_primary_flag(self):
        changes = MappingChangeSet()
        mapping = DataMapping(project_id=1, internal_id=4, external_key="v1", is_primary=False)
        changes.add(ArtifactType.RELEASE, mapping)

        self.assertIs(changes.find_new_by_external_key(1, ArtifactType.RELEASE, "v1"), mapping)
        self.assertIsNone(changes.find_new_by_external_key(1, ArtifactType.INCIDENT, "v1"))
        self.assertIsNone(changes.find_new_by_external_key(2, ArtifactType.RELEASE, "v1"))


if __name__ == "__main__":
    unittest.main()
