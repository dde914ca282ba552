"""Integration layer for the care-records data store."""

from .care_records import (
    CareRecordsClient,
    CareRecordsConfig,
    CareRecordsError,
)

__all__ = [
    "CareRecordsClient",
    "CareRecordsConfig",
    "CareRecordsError",
]
