"""vpnsync: connection and settings synchronization core for a VPN dashboard."""

from .app import VpnSyncApp
from .config import VpnSyncConfig, get_config
from .errors import (
    ActivationError,
    AuthorizationError,
    InvalidStateError,
    SyncError,
    TransportError,
)

__version__ = "1.0.0"

__all__ = [
    "ActivationError",
    "AuthorizationError",
    "InvalidStateError",
    "SyncError",
    "TransportError",
    "VpnSyncApp",
    "VpnSyncConfig",
    "get_config",
]
