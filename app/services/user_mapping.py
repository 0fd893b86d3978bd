"""User identity mapping between the two systems"""

import logging
from typing import List, Optional

from app.models.data_mapping import DataMapping
from app.services.mapping_resolver import (
    find_by_external_key_global,
    find_by_internal_id_global,
)
from app.services.test_management import TestManagementClient

logger = logging.getLogger(__name__)


class UserMapper:
    """Resolve users either from the user mapping table or by username.

    With `auto_map_users`, internal and external usernames are assumed to be
    identical and the server is asked directly; the mapping table is ignored.
    """

    def __init__(
        self,
        client: TestManagementClient,
        user_mappings: List[DataMapping],
        auto_map_users: bool = False,
    ):
        self.client = client
        self.user_mappings = user_mappings
        self.auto_map_users = auto_map_users

    def by_internal_id(self, user_id: int) -> Optional[DataMapping]:
        """Mapping for an internal user id."""
        if not self.auto_map_users:
            return find_by_internal_id_global(user_id, self.user_mappings)

        user = self.client.get_user(user_id)
        if user is None:
            return None
        return DataMapping(internal_id=user.user_id, external_key=user.username)

    def by_external_key(self, username: str) -> Optional[DataMapping]:
        """Mapping for an external username."""
        if not self.auto_map_users:
            return find_by_external_key_global(username, self.user_mappings)

        try:
            user = self.client.get_user_by_username(username)
        except Exception as e:
            # The server reports unknown usernames as a fault.
            logger.debug(f"User lookup for '{username}' failed: {e}")
            return None
        if user is None:
            return None
        return DataMapping(internal_id=user.user_id, external_key=user.username)
