"""Enumerations shared by the connection state and the wire models."""

from enum import Enum


class Protocol(str, Enum):
    OPENVPN_TCP = "openvpn_tcp"
    OPENVPN_UDP = "openvpn_udp"
    WIREGUARD = "wireguard"
    SHADOWSOCKS = "shadowsocks"
    IKEV2 = "ikev2"


class Encryption(str, Enum):
    AES_128_GCM = "aes_128_gcm"
    AES_256_GCM = "aes_256_gcm"
    CHACHA20_POLY1305 = "chacha20_poly1305"


class SubscriptionTier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ULTIMATE = "ultimate"


class Feature(str, Enum):
    """Features gated by the Feature-Access API."""
    SHADOWSOCKS = "shadowsocks"
    PREMIUM_ENCRYPTION = "premium-encryption"
    OBFUSCATION = "obfuscation"
    DOUBLE_VPN = "double-vpn"


# Fallback entitlements when the Feature-Access API cannot be reached
TIER_FEATURES: dict[SubscriptionTier, frozenset[Feature]] = {
    SubscriptionTier.FREE: frozenset(),
    SubscriptionTier.BASIC: frozenset({Feature.OBFUSCATION}),
    SubscriptionTier.PREMIUM: frozenset(Feature),
    SubscriptionTier.ULTIMATE: frozenset(Feature),
}


def coerce_enum(enum_cls, value):
    """Case-insensitive conversion of a wire string to an enum member."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        return enum_cls(value.strip().lower())
    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")
