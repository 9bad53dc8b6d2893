"""HTTP transport to the dashboard API."""

from .settings_api import WIRE_NAMES, SettingsTransport, build_settings_payload

__all__ = ["WIRE_NAMES", "SettingsTransport", "build_settings_payload"]
