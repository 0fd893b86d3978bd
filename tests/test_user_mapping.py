import logging
import unittest

from app.models.artifacts import User
from app.models.data_mapping import DataMapping
from app.services.user_mapping import UserMapper
from tests.fakes import FakeTestManagement

logging.disable(logging.CRITICAL)


class UserMapperTableTests(unittest.TestCase):
    def setUp(self):
        self.client = FakeTestManagement(users=[User(user_id=2, username="alice")])
        self.mappings = [DataMapping(internal_id=2, external_key="alice.ext")]

    def test_lookup_uses_mapping_table(self):
        users = UserMapper(self.client, self.mappings)

        self.assertEqual(users.by_internal_id(2).external_key, "alice.ext")
        self.assertEqual(users.by_external_key("alice.ext").internal_id, 2)

    def test_unmapped_user(self):
        users = UserMapper(self.client, self.mappings)

        self.assertIsNone(users.by_internal_id(3))
        self.assertIsNone(users.by_external_key("alice"))


class UserMapperAutoMapTests(unittest.TestCase):
    def setUp(self):
        self.client = FakeTestManagement(users=[User(user_id=2, username="alice")])

    def test_lookup_by_username(self):
        users = UserMapper(self.client, [], auto_map_users=True)

        self.assertEqual(users.by_internal_id(2), DataMapping(internal_id=2, external_key="alice"))
        self.assertEqual(users.by_external_key("alice").internal_id, 2)

    def test_unknown_user_is_not_found(self):
        users = UserMapper(self.client, [], auto_map_users=True)

        self.assertIsNone(users.by_internal_id(42))
        # The fake raises for unknown usernames, like the real server.
        self.assertIsNone(users.by_external_key("nobody"))

    def test_mapping_table_is_ignored(self):
        users = UserMapper(
            self.client,
            [DataMapping(internal_id=9, external_key="zed")],
            auto_map_users=True,
        )

        self.assertIsNone(users.by_internal_id(9))


if __name__ == "__main__":
    unittest.main()
