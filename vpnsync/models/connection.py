"""Connection state snapshot owned by the connection state store."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Optional

from .enums import Encryption, Protocol, SubscriptionTier
from .server import ServerRef

# Fields that cannot change while a tunnel is up
CONNECTION_LOCKED_FIELDS = frozenset({"protocol", "encryption", "double_vpn", "obfuscation"})

# Boolean feature flags, each guarded by its own toggle control
TOGGLE_FIELDS = ("kill_switch", "dns_leak_protection", "double_vpn", "obfuscation", "anti_censorship")

# Fields with a single dedicated in-flight slot
SLOT_FIELDS = ("protocol", "encryption")

SETTING_FIELDS = frozenset(TOGGLE_FIELDS + SLOT_FIELDS)


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot of the connection and its settings.

    The store replaces the snapshot on every change; subscribers always get
    the whole state rather than a delta.
    """
    connected: bool = False
    connect_time: Optional[datetime] = None
    protocol: Protocol = Protocol.OPENVPN_TCP
    encryption: Encryption = Encryption.AES_256_GCM
    kill_switch: bool = True
    dns_leak_protection: bool = True
    double_vpn: bool = False
    obfuscation: bool = False
    anti_censorship: bool = False
    selected_server: Optional[ServerRef] = None
    available_servers: tuple[ServerRef, ...] = field(default_factory=tuple)
    subscription: SubscriptionTier = SubscriptionTier.FREE
    virtual_ip: Optional[str] = None

    def with_changes(self, **changes) -> "ConnectionState":
        return replace(self, **changes)

    def settings(self) -> dict:
        """Current values of the user-editable settings."""
        return {name: getattr(self, name) for name in SETTING_FIELDS}

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["protocol"] = self.protocol.value
        data["encryption"] = self.encryption.value
        data["subscription"] = self.subscription.value
        data["connect_time"] = self.connect_time.isoformat() if self.connect_time else None
        data["selected_server"] = self.selected_server.model_dump() if self.selected_server else None
        data["available_servers"] = [s.model_dump() for s in self.available_servers]
        return data
