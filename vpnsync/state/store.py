"""Single source of truth for connection and settings.

Every settings mutation runs the same protocol: validate, apply
optimistically and notify, write remotely, then commit or roll back.
Boolean settings pass through their ToggleControl first; protocol and
encryption each have one in-flight slot. Requests that find the slot or
toggle busy are dropped, never queued.
"""

import asyncio
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Optional

from ..errors import AuthorizationError, InvalidStateError, SyncError, TransportError
from ..models import (
    CONNECTION_LOCKED_FIELDS,
    SETTING_FIELDS,
    TIER_FEATURES,
    TOGGLE_FIELDS,
    ConnectionState,
    Encryption,
    Feature,
    Protocol,
    ServerRef,
    SessionInfo,
)
from ..models.enums import coerce_enum
from ..transport.settings_api import WIRE_NAMES
from ..utils.logging import get_logger
from ..utils.observable import Observable, Unsubscribe
from .mutation import Mutation
from .toggle import ToggleControl

logger = get_logger("state.store")

# camelCase wire keys accepted as aliases for store field names
FIELD_ALIASES: dict[str, str] = {
    wire: name for name, wires in WIRE_NAMES.items() for wire in wires
}

TOGGLE_FEATURES: dict[str, Feature] = {
    "obfuscation": Feature.OBFUSCATION,
    "double_vpn": Feature.DOUBLE_VPN,
}

FEATURE_MESSAGES: dict[Feature, str] = {
    Feature.SHADOWSOCKS: "Shadowsocks protocol is only available with Premium or Ultimate plans",
    Feature.PREMIUM_ENCRYPTION: "ChaCha20-Poly1305 encryption requires a Premium or Ultimate plan",
    Feature.OBFUSCATION: "Traffic obfuscation requires a paid plan",
    Feature.DOUBLE_VPN: "Double VPN requires a Premium or Ultimate plan",
}


@dataclass(frozen=True)
class ErrorEvent:
    """User-facing failure delivered to error subscribers."""
    setting: str
    error: SyncError
    message: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> str:
        return type(self.error).__name__


def feature_for(name: str, value: Any) -> Optional[Feature]:
    """Feature that must be entitled before ``name`` may take ``value``."""
    if name == "protocol" and value is Protocol.SHADOWSOCKS:
        return Feature.SHADOWSOCKS
    if name == "encryption" and value is Encryption.CHACHA20_POLY1305:
        return Feature.PREMIUM_ENCRYPTION
    if value is True:
        return TOGGLE_FEATURES.get(name)
    return None


class ConnectionStateStore:
    """Owns the ConnectionState snapshot and mediates every change to it."""

    def __init__(
        self,
        transport,
        kill_switch=None,
        toggle_cooldown: float = 1.0,
        connection_cooldown: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transport = transport
        self._kill_switch = kill_switch
        self._connection_cooldown = connection_cooldown
        self._clock = clock

        self._state = ConnectionState()
        self._states: Observable[ConnectionState] = Observable("connection_state", self._state)
        self._errors: Observable[ErrorEvent] = Observable("settings_errors")

        self._slots: dict[str, Mutation] = {}
        self._last_mutation: dict[str, Mutation] = {}
        self._feature_access: dict[Feature, bool] = {}
        self._connecting = False
        self._last_connect_attempt: Optional[float] = None

        self._toggles: dict[str, ToggleControl] = {
            name: ToggleControl(
                name,
                forward=partial(self._mutate, name),
                current=partial(self._read, name),
                guard=partial(self._guard_toggle, name),
                cooldown=toggle_cooldown,
                clock=clock,
            )
            for name in TOGGLE_FIELDS
        }

        if kill_switch is not None:
            kill_switch.observe(self._state)
            self.subscribe(kill_switch.observe)

    @classmethod
    def from_config(cls, transport, kill_switch, config, **kwargs) -> "ConnectionStateStore":
        return cls(
            transport,
            kill_switch=kill_switch,
            toggle_cooldown=config.toggle_cooldown,
            connection_cooldown=config.connection_cooldown,
            **kwargs,
        )

    # Observation

    @property
    def state(self) -> ConnectionState:
        return self._state

    def subscribe(self, callback: Callable[[ConnectionState], None]) -> Unsubscribe:
        """Receive the whole state snapshot on every change."""
        return self._states.subscribe(callback)

    def subscribe_errors(self, callback: Callable[[ErrorEvent], None]) -> Unsubscribe:
        return self._errors.subscribe(callback)

    def toggle(self, name: str) -> ToggleControl:
        return self._toggles[self._canonical(name)]

    def pending(self, name: str) -> bool:
        """Whether a write for ``name`` is in flight or cooling down."""
        name = self._canonical(name)
        if name in self._toggles:
            return self._toggles[name].pending
        return name in self._slots

    def feature_access(self, feature: Feature) -> Optional[bool]:
        """Cached entitlement, None when never checked."""
        return self._feature_access.get(feature)

    def _read(self, name: str) -> Any:
        return getattr(self._state, name)

    def _apply(self, **changes) -> None:
        self._state = self._state.with_changes(**changes)
        self._states.emit(self._state)

    def _report(self, name: str, error: SyncError) -> None:
        self._errors.emit(ErrorEvent(setting=name, error=error, message=error.user_message))

    # Validation

    def _canonical(self, name: str) -> str:
        name = FIELD_ALIASES.get(name, name)
        if name not in SETTING_FIELDS:
            raise ValueError(f"Unknown setting: {name}")
        return name

    def _coerce(self, name: str, value: Any) -> Any:
        if name == "protocol":
            return coerce_enum(Protocol, value)
        if name == "encryption":
            return coerce_enum(Encryption, value)
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be a boolean, got {value!r}")
        return value

    def _check_unlocked(self, names) -> None:
        locked = sorted(n for n in names if n in CONNECTION_LOCKED_FIELDS)
        if locked and self._state.connected:
            error = InvalidStateError(f"Cannot change {', '.join(locked)} while connected")
            logger.warning("settings_update_rejected_connected", fields=locked)
            self._report(locked[0], error)
            raise error

    def _guard_toggle(self, name: str, value: bool) -> None:
        if name in CONNECTION_LOCKED_FIELDS and self._state.connected:
            raise InvalidStateError(f"Cannot change {name} while connected")
        feature = TOGGLE_FEATURES.get(name)
        if value and feature is not None and self._feature_access.get(feature) is False:
            raise AuthorizationError(
                f"No access to {feature.value}",
                user_message=FEATURE_MESSAGES[feature],
                feature=feature.value,
            )

    async def _has_access(self, feature: Feature) -> bool:
        try:
            allowed = await self._transport.check_feature_access(feature)
        except AuthorizationError:
            allowed = False
        except TransportError as e:
            allowed = feature in TIER_FEATURES[self._state.subscription]
            logger.warning(
                "feature_access_fallback_to_tier",
                feature=feature.value,
                tier=self._state.subscription.value,
                allowed=allowed,
                error=str(e),
            )
        self._feature_access[feature] = allowed
        return allowed

    async def _check_entitlements(self, changes: dict) -> None:
        for name, value in changes.items():
            feature = feature_for(name, value)
            if feature is None or await self._has_access(feature):
                continue
            error = AuthorizationError(
                f"No access to {feature.value}",
                user_message=FEATURE_MESSAGES[feature],
                feature=feature.value,
            )
            logger.warning("settings_update_rejected_entitlement", field=name, feature=feature.value)
            self._report(name, error)
            raise error

    # Settings mutation

    async def update_settings(self, changes: dict) -> list[Mutation]:
        """Apply a partial settings change.

        Raises InvalidStateError or AuthorizationError before touching state.
        Remote failures are rolled back, reported to error subscribers and
        recorded on the returned mutations. Fields whose request was dropped
        (busy slot or cooling toggle) have no mutation in the result.
        """
        if not changes:
            return []
        coerced = {}
        for key, value in changes.items():
            name = self._canonical(key)
            coerced[name] = self._coerce(name, value)

        self._check_unlocked(coerced)
        await self._check_entitlements(coerced)

        results = await asyncio.gather(*(self._submit(name, value) for name, value in coerced.items()))
        return [m for m in results if m is not None]

    async def _submit(self, name: str, value: Any) -> Optional[Mutation]:
        if name in self._toggles:
            accepted = await self._toggles[name].request(value)
            return self._last_mutation.get(name) if accepted else None

        if name in self._slots:
            logger.info("settings_update_dropped_in_flight", field=name, requested=value.value)
            return None
        # connect() may have run while the entitlement check was awaited
        self._check_unlocked([name])
        return await self._mutate(name, value)

    async def _mutate(self, name: str, value: Any) -> Mutation:
        mutation = Mutation(setting=name, previous=self._read(name), requested=value)
        self._slots[name] = mutation
        self._last_mutation[name] = mutation
        self._apply(**{name: value})

        try:
            record = await self._transport.update_field(name, value)
        except Exception as exc:
            error = exc if isinstance(exc, SyncError) else TransportError(str(exc))
            self._apply(**{name: mutation.previous})
            mutation.roll_back(error)
            logger.warning(
                "settings_update_rolled_back",
                field=name,
                restored=getattr(mutation.previous, "value", mutation.previous),
                error=str(error),
            )
            self._report(name, error)
        else:
            server_value = getattr(record, name) if name in record.model_fields_set else value
            mutation.commit(server_value)
            if server_value != value:
                logger.info("settings_update_normalized", field=name, server_value=getattr(server_value, "value", server_value))
                self._apply(**{name: server_value})
            logger.debug("settings_update_committed", field=name)
        finally:
            if self._slots.get(name) is mutation:
                del self._slots[name]
        return mutation

    # Servers

    def select_server(self, server: Optional[ServerRef]) -> None:
        self._apply(selected_server=server)

    def set_available_servers(self, servers) -> None:
        self._apply(available_servers=tuple(servers))

    async def refresh_servers(self, region: Optional[str] = None) -> None:
        try:
            servers = await self._transport.list_servers(region=region)
        except SyncError as e:
            logger.warning("server_catalog_unavailable", error=str(e))
            return
        self.set_available_servers(servers)

    # Loading

    async def refresh_feature_access(self) -> dict[Feature, bool]:
        for feature in Feature:
            await self._has_access(feature)
        return dict(self._feature_access)

    async def load(self) -> None:
        """Seed the store from the account, settings, session and catalog APIs.

        Each source is optional: a failure is logged and the defaults stay.
        """
        try:
            account = await self._transport.get_user()
            self._apply(subscription=account.subscription)
        except SyncError as e:
            logger.warning("account_load_failed", error=str(e))

        try:
            record = await self._transport.get_settings()
            settings = {
                name: getattr(record, name)
                for name in SETTING_FIELDS
                if not self.pending(name)
            }
            self._apply(**settings)
            logger.info("settings_loaded", **{k: getattr(v, "value", v) for k, v in settings.items()})
        except SyncError as e:
            logger.warning("settings_load_failed", error=str(e))

        try:
            session = await self._transport.get_current_session()
            if session is not None and session.active:
                self._apply(
                    connected=True,
                    connect_time=session.start_time,
                    virtual_ip=session.virtual_ip,
                )
        except SyncError as e:
            logger.warning("session_load_failed", error=str(e))

        await self.refresh_feature_access()
        await self.refresh_servers()

    # Connection lifecycle

    def _session_changes(self, session: SessionInfo) -> dict:
        changes: dict[str, Any] = {"virtual_ip": session.virtual_ip}
        if session.start_time is not None:
            changes["connect_time"] = session.start_time
        for name, enum_cls in (("protocol", Protocol), ("encryption", Encryption)):
            reported = getattr(session, name)
            if reported:
                try:
                    changes[name] = coerce_enum(enum_cls, reported)
                except ValueError:
                    logger.warning("session_reported_unknown_value", field=name, value=reported)
        return changes

    async def connect(self, server: Optional[ServerRef] = None) -> SessionInfo:
        """Start a VPN session on ``server`` (or the selected server)."""
        server = server or self._state.selected_server
        if server is None and self._state.available_servers:
            server = self._state.available_servers[0]
        if server is None:
            error = InvalidStateError("No server selected", user_message="Select a server before connecting")
            self._report("connection", error)
            raise error
        if self._state.connected:
            raise InvalidStateError("Already connected", user_message="Already connected to the VPN")
        if self._connecting:
            raise InvalidStateError(
                "Connection already in progress",
                user_message="Please wait while connecting to VPN",
            )

        now = self._clock()
        if self._last_connect_attempt is not None:
            remaining = self._connection_cooldown - (now - self._last_connect_attempt)
            if remaining > 0:
                seconds = math.ceil(remaining)
                logger.warning("connection_cooldown", remaining_seconds=seconds)
                raise InvalidStateError(
                    "Connection on cooldown",
                    user_message=f"Please wait {seconds} seconds before connecting again",
                )

        # Claimed before the first await so concurrent attempts see it
        self._connecting = True
        try:
            if self._state.protocol is Protocol.SHADOWSOCKS and not await self._has_access(Feature.SHADOWSOCKS):
                error = AuthorizationError(
                    "No access to shadowsocks",
                    user_message=FEATURE_MESSAGES[Feature.SHADOWSOCKS],
                    feature=Feature.SHADOWSOCKS.value,
                )
                self._report("connection", error)
                raise error

            self._last_connect_attempt = now
            self._apply(
                connected=True,
                connect_time=datetime.now(timezone.utc),
                selected_server=server,
            )
            logger.info("vpn_connecting", server_id=server.id, server=server.name, protocol=self._state.protocol.value)

            try:
                session = await self._transport.start_session(
                    server.id,
                    self._state.protocol.value,
                    self._state.encryption.value,
                )
            except SyncError as e:
                self._apply(connected=False, connect_time=None, virtual_ip=None)
                logger.error("vpn_connect_failed", server_id=server.id, error=str(e))
                self._report("connection", e)
                raise
        finally:
            self._connecting = False

        self._apply(**self._session_changes(session))
        logger.info("vpn_connected", server_id=server.id, virtual_ip=session.virtual_ip)
        return session

    async def disconnect(self) -> bool:
        """Controlled disconnect. Local state is cleared regardless of the API."""
        if not self._state.connected:
            logger.debug("vpn_disconnect_not_connected")
            return False

        self._apply(connected=False, connect_time=None, virtual_ip=None)
        try:
            ended = await self._transport.end_session()
            logger.info("vpn_disconnected", session_ended=ended)
        except SyncError as e:
            logger.warning("vpn_session_end_failed", error=str(e))
        return True

    async def connection_lost(self) -> None:
        """Unexpected drop of the tunnel, reported by the watchdog or daemon."""
        if not self._state.connected:
            return
        logger.warning("vpn_connection_lost", server_id=self._state.selected_server.id if self._state.selected_server else None)
        if self._kill_switch is not None:
            await self._kill_switch.handle_connection_drop()
        self._apply(connected=False, connect_time=None, virtual_ip=None)

    def close(self) -> None:
        """Drop all subscribers."""
        self._states.clear()
        self._errors.clear()

    def get_status(self) -> dict:
        return {
            "state": self._state.to_dict(),
            "in_flight": sorted(self._slots),
            "toggles": {name: toggle.get_status() for name, toggle in self._toggles.items()},
            "feature_access": {f.value: allowed for f, allowed in self._feature_access.items()},
        }
