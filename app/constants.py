"""Identifiers and limits shared by the data-sync"""

import enum
from datetime import datetime

# Incidents are retrieved from the server in pages of this size.
INCIDENT_PAGE_SIZE = 100

# Used as the last-sync date on the very first run.
DEFAULT_LAST_SYNC_DATE = datetime(1950, 1, 1)

# The external system is never asked for bugs older than this.
MIN_EXTERNAL_FILTER_DATE = datetime(1990, 1, 1)

# Server-side release version numbers are limited to 10 characters.
MAX_VERSION_NUMBER_LENGTH = 10


class ArtifactType(int, enum.Enum):
    """Artifact types used in the data-sync"""
    INCIDENT = 3
    RELEASE = 4


class ArtifactField(int, enum.Enum):
    """Standard incident fields that have value mappings"""
    SEVERITY = 1
    PRIORITY = 2
    STATUS = 3
    TYPE = 4


class CustomPropertyType(int, enum.Enum):
    TEXT = 1
    INTEGER = 2
    DECIMAL = 3
    BOOLEAN = 4
    DATE = 5
    LIST = 6
    MULTI_LIST = 7
    USER = 8


class AttachmentType(int, enum.Enum):
    FILE = 1
    URL = 2
