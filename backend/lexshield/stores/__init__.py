"""
External store interfaces and their Redis implementations.
"""

from lexshield.stores.base import (
    AuthEventStore,
    FirmIPSettings,
    FirmSettingsStore,
    IdentityStore,
    KeyValueStore,
    UserRecord,
)
from lexshield.stores.redis_store import RedisAuthEventStore, RedisKeyValueStore

__all__ = [
    "AuthEventStore",
    "FirmIPSettings",
    "FirmSettingsStore",
    "IdentityStore",
    "KeyValueStore",
    "UserRecord",
    "RedisAuthEventStore",
    "RedisKeyValueStore",
]
