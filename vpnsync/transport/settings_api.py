"""Request/response wrapper around the dashboard API.

One call here is exactly one outbound request. Nothing is retried; the
caller decides whether to try again. httpx failures are converted to the
vpnsync error taxonomy before they leave this module.
"""

import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..errors import AuthorizationError, TransportError
from ..models import (
    Feature,
    ServerRef,
    ServerRegion,
    SessionInfo,
    SettingsRecord,
    UserAccount,
)
from ..utils.logging import get_logger

logger = get_logger("transport.settings_api")

# Store field name -> JSON keys sent in POST /settings.
# protocol/encryption are sent under both the legacy and canonical key.
WIRE_NAMES: dict[str, tuple[str, ...]] = {
    "kill_switch": ("killSwitch",),
    "dns_leak_protection": ("dnsLeakProtection",),
    "double_vpn": ("doubleVpn",),
    "obfuscation": ("obfuscation",),
    "anti_censorship": ("antiCensorship",),
    "protocol": ("protocol", "preferredProtocol"),
    "encryption": ("encryption", "preferredEncryption"),
}

_AUTH_STATUSES = (401, 403)


def build_settings_payload(name: str, value: Any) -> dict:
    """Translate one store field into the POST /settings body."""
    if name not in WIRE_NAMES:
        raise ValueError(f"Unknown setting: {name}")
    wire_value = getattr(value, "value", value)
    return {key: wire_value for key in WIRE_NAMES[name]}


class SettingsTransport:
    """Async client for the settings, feature-access, session and catalog APIs."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._total_requests: int = 0
        self._total_failures: int = 0

    @classmethod
    def from_config(cls, config) -> "SettingsTransport":
        return cls(
            base_url=config.api_base_url,
            token=config.api_token,
            timeout=config.request_timeout,
        )

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        allow_status: tuple[int, ...] = (),
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Statuses listed in ``allow_status`` return None instead of raising.
        """
        url = f"{self.base_url}{path}"
        self._total_requests += 1
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers(),
                )
                if response.status_code in allow_status:
                    return None
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()
        except httpx.HTTPStatusError as exc:
            self._total_failures += 1
            status = exc.response.status_code
            logger.warning("api_http_error", method=method, path=path, status=status)
            if status in _AUTH_STATUSES:
                raise AuthorizationError(
                    f"{method} {path} rejected with HTTP {status}",
                    status_code=status,
                ) from exc
            raise TransportError(f"{method} {path} failed with HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            self._total_failures += 1
            logger.warning("api_network_error", method=method, path=path, error=str(exc))
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            self._total_failures += 1
            logger.warning("api_invalid_json", method=method, path=path, error=str(exc))
            raise TransportError(f"{method} {path} returned invalid JSON") from exc

    def _parse(self, model, data: Any, path: str):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("api_unexpected_payload", path=path, error=str(exc))
            raise TransportError(f"Unexpected response from {path}") from exc

    # Settings

    async def get_settings(self) -> SettingsRecord:
        data = await self._request("GET", "/settings")
        return self._parse(SettingsRecord, data or {}, "/settings")

    async def update_field(self, name: str, value: Any) -> SettingsRecord:
        """Persist one setting and return the server's authoritative record."""
        payload = build_settings_payload(name, value)
        logger.debug("settings_update_sending", field=name, payload=payload)
        data = await self._request("POST", "/settings", json=payload)
        return self._parse(SettingsRecord, data or {}, "/settings")

    async def check_feature_access(self, feature: Feature | str) -> bool:
        feature_name = getattr(feature, "value", feature)
        data = await self._request("GET", f"/feature-access/{feature_name}")
        has_access = bool((data or {}).get("hasAccess", False))
        logger.debug("feature_access_checked", feature=feature_name, has_access=has_access)
        return has_access

    # Sessions

    async def get_current_session(self) -> Optional[SessionInfo]:
        data = await self._request("GET", "/sessions/current")
        if not data:
            return None
        return self._parse(SessionInfo, data, "/sessions/current")

    async def start_session(self, server_id: int, protocol: str, encryption: str) -> SessionInfo:
        data = await self._request(
            "POST",
            "/sessions/start",
            json={"serverId": server_id, "protocol": protocol, "encryption": encryption},
        )
        return self._parse(SessionInfo, data or {}, "/sessions/start")

    async def end_session(self) -> bool:
        """End the current session. Returns False when there was none to end."""
        data = await self._request(
            "POST",
            "/sessions/end",
            json={"abrupt": False},
            allow_status=(401, 404),
        )
        return data is not None

    async def ping(self) -> float:
        """Round trip through the tunnel. Returns the latency in seconds."""
        start = time.monotonic()
        await self._request("GET", "/vpn/ping")
        return time.monotonic() - start

    # Catalog and account

    async def list_servers(
        self,
        region: Optional[str] = None,
        obfuscated: bool = False,
        double_hop: bool = False,
    ) -> list[ServerRef]:
        params = {}
        if region:
            params["region"] = region
        if obfuscated:
            params["obfuscated"] = "true"
        if double_hop:
            params["doubleHop"] = "true"
        data = await self._request("GET", "/servers", params=params or None)
        return [self._parse(ServerRef, item, "/servers") for item in data or []]

    async def list_regions(self) -> list[ServerRegion]:
        data = await self._request("GET", "/servers/regions")
        return [self._parse(ServerRegion, item, "/servers/regions") for item in data or []]

    async def get_user(self) -> UserAccount:
        data = await self._request("GET", "/user")
        return self._parse(UserAccount, data or {}, "/user")

    # Kill switch

    async def get_kill_switch_status(self) -> dict:
        data = await self._request("GET", "/killswitch/status")
        return data or {"active": False}

    async def activate_kill_switch(self, reason: str = "manual") -> None:
        await self._request("POST", "/killswitch/activate", json={"reason": reason})

    async def deactivate_kill_switch(self) -> None:
        await self._request("POST", "/killswitch/deactivate", json={})

    def get_stats(self) -> dict:
        return {
            "base_url": self.base_url,
            "total_requests": self._total_requests,
            "total_failures": self._total_failures,
        }
