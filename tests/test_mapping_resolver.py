import unittest

from app.models.data_mapping import DataMapping
from app.services.mapping_resolver import (
    find_by_external_key,
    find_by_external_key_global,
    find_by_internal_id,
    find_by_internal_id_global,
)


class FindByInternalIdTests(unittest.TestCase):
    def setUp(self):
        self.mappings = [
            DataMapping(project_id=1, internal_id=10, external_key="BUG-1", is_primary=True),
            DataMapping(project_id=1, internal_id=10, external_key="BUG-2", is_primary=False),
        ]

    def test_first_match_wins(self):
        out = find_by_internal_id(1, 10, self.mappings)
        self.assertIs(out, self.mappings[0])
        self.assertEqual(out.external_key, "BUG-1")

    def test_duplicate_order_is_respected(self):
        reordered = list(reversed(self.mappings))
        self.assertEqual(find_by_internal_id(1, 10, reordered).external_key, "BUG-2")

    def test_wrong_project_is_not_found(self):
        mappings = [DataMapping(project_id=2, internal_id=5, external_key="alice")]
        self.assertIsNone(find_by_internal_id(1, 5, mappings))

    def test_global_variant_ignores_project(self):
        mappings = [DataMapping(project_id=2, internal_id=5, external_key="alice")]
        self.assertIs(find_by_internal_id_global(5, mappings), mappings[0])

    def test_global_variant_matches_unscoped_mappings(self):
        mappings = [DataMapping(internal_id=7, external_key="bob")]
        self.assertEqual(find_by_internal_id_global(7, mappings).external_key, "bob")
        self.assertIsNone(find_by_internal_id(1, 7, mappings))

    def test_empty_collection(self):
        self.assertIsNone(find_by_internal_id(1, 10, []))
        self.assertIsNone(find_by_internal_id_global(10, []))

    def test_non_primary_is_returned_by_internal_lookup(self):
        mappings = [DataMapping(project_id=1, internal_id=3, external_key="X", is_primary=False)]
        self.assertIs(find_by_internal_id(1, 3, mappings), mappings[0])


class FindByExternalKeyTests(unittest.TestCase):
    def setUp(self):
        self.mappings = [
            DataMapping(project_id=1, internal_id=10, external_key="BUG-1", is_primary=True),
            DataMapping(project_id=1, internal_id=10, external_key="BUG-2", is_primary=False),
        ]

    def test_only_primary_does_not_fall_back(self):
        self.assertIsNone(find_by_external_key(1, "BUG-2", self.mappings, only_primary=True))

    def test_any_match_when_primary_not_required(self):
        out = find_by_external_key(1, "BUG-2", self.mappings, only_primary=False)
        self.assertIs(out, self.mappings[1])

    def test_primary_match(self):
        out = find_by_external_key(1, "BUG-1", self.mappings, only_primary=True)
        self.assertIs(out, self.mappings[0])

    def test_primary_found_after_non_primary(self):
        mappings = [
            DataMapping(project_id=1, internal_id=2, external_key="High", is_primary=False),
            DataMapping(project_id=1, internal_id=1, external_key="High", is_primary=True),
        ]
        self.assertEqual(find_by_external_key(1, "High", mappings, only_primary=True).internal_id, 1)
        self.assertEqual(find_by_external_key(1, "High", mappings, only_primary=False).internal_id, 2)

    def test_project_scope(self):
        self.assertIsNone(find_by_external_key(2, "BUG-1", self.mappings, only_primary=False))

    def test_global_variant(self):
        mappings = [
            DataMapping(project_id=4, internal_id=9, external_key="carol", is_primary=False),
        ]
        self.assertIs(find_by_external_key_global("carol", mappings), mappings[0])
        self.assertIsNone(find_by_external_key_global("dave", mappings))

    def test_empty_collection(self):
        self.assertIsNone(find_by_external_key(1, "BUG-1", [], only_primary=False))
        self.assertIsNone(find_by_external_key(1, "BUG-1", [], only_primary=True))
        self.assertIsNone(find_by_external_key_global("BUG-1", []))

    def test_lookups_are_repeatable_and_leave_input_untouched(self):
        snapshot = list(self.mappings)
        first = find_by_external_key(1, "BUG-2", self.mappings, only_primary=False)
        second = find_by_external_key(1, "BUG-2", self.mappings, only_primary=False)
        self.assertIs(first, second)
        self.assertEqual(self.mappings, snapshot)

    def test_accepts_any_iterable(self):
        out = find_by_external_key(1, "BUG-1", iter(self.mappings), only_primary=True)
        self.assertEqual(out.internal_id, 10)


if __name__ == "__main__":
    unittest.main()
