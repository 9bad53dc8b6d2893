"""Data model for connection state, settings and the server catalog."""

from .connection import (
    CONNECTION_LOCKED_FIELDS,
    SETTING_FIELDS,
    SLOT_FIELDS,
    TOGGLE_FIELDS,
    ConnectionState,
)
from .enums import TIER_FEATURES, Encryption, Feature, Protocol, SubscriptionTier
from .server import ServerRef, ServerRegion
from .settings import SessionInfo, SettingsRecord, UserAccount

__all__ = [
    "CONNECTION_LOCKED_FIELDS",
    "SETTING_FIELDS",
    "SLOT_FIELDS",
    "TOGGLE_FIELDS",
    "TIER_FEATURES",
    "ConnectionState",
    "Encryption",
    "Feature",
    "Protocol",
    "ServerRef",
    "ServerRegion",
    "SessionInfo",
    "SettingsRecord",
    "SubscriptionTier",
    "UserAccount",
]
