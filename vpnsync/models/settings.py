"""Wire models for the settings, session and user endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .enums import Encryption, Protocol, SubscriptionTier, coerce_enum


class SettingsRecord(BaseModel):
    """The remote settings row returned by ``GET/POST /settings``.

    The canonical keys are ``preferredProtocol``/``preferredEncryption``;
    older servers answer with ``protocol``/``encryption``, accepted as
    fallbacks.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kill_switch: bool = Field(default=True, validation_alias=AliasChoices("killSwitch", "kill_switch"))
    dns_leak_protection: bool = Field(
        default=True, validation_alias=AliasChoices("dnsLeakProtection", "dns_leak_protection")
    )
    double_vpn: bool = Field(default=False, validation_alias=AliasChoices("doubleVpn", "double_vpn"))
    obfuscation: bool = False
    anti_censorship: bool = Field(
        default=False, validation_alias=AliasChoices("antiCensorship", "anti_censorship")
    )
    protocol: Protocol = Field(
        default=Protocol.OPENVPN_TCP,
        validation_alias=AliasChoices("preferredProtocol", "preferred_protocol", "protocol"),
    )
    encryption: Encryption = Field(
        default=Encryption.AES_256_GCM,
        validation_alias=AliasChoices("preferredEncryption", "preferred_encryption", "encryption"),
    )

    @field_validator("kill_switch", "dns_leak_protection", "double_vpn", "obfuscation", "anti_censorship", mode="before")
    @classmethod
    def null_as_false(cls, v):
        # Nullable boolean columns come back as null for never-set rows
        return False if v is None else v

    @field_validator("protocol", mode="before")
    @classmethod
    def normalize_protocol(cls, v):
        return coerce_enum(Protocol, v)

    @field_validator("encryption", mode="before")
    @classmethod
    def normalize_encryption(cls, v):
        return coerce_enum(Encryption, v)


class SessionInfo(BaseModel):
    """Active session descriptor from the session endpoints."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[int] = None
    server_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("serverId", "server_id"))
    protocol: Optional[str] = None
    encryption: Optional[str] = None
    start_time: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("startTime", "start_time"))
    end_time: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("endTime", "end_time"))
    virtual_ip: Optional[str] = Field(default=None, validation_alias=AliasChoices("virtualIp", "virtual_ip"))

    @property
    def active(self) -> bool:
        return self.end_time is None


class UserAccount(BaseModel):
    """The slice of ``GET /user`` the sync core mirrors."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[int] = None
    username: Optional[str] = None
    subscription: SubscriptionTier = SubscriptionTier.FREE

    @field_validator("subscription", mode="before")
    @classmethod
    def normalize_subscription(cls, v):
        return SubscriptionTier.FREE if v is None else coerce_enum(SubscriptionTier, v)
