"""Kill-switch monitor for VPN drop protection.

Tracks whether network-blocking protection is engaged. This is separate
from the ``kill_switch`` setting: the setting records that the user wants
protection, the monitor records whether traffic is currently blocked.

Phases:
    - disabled: the user has not enabled the feature (or is not connected)
    - standby: enabled and connected, not blocking
    - active: blocking all non-VPN traffic until an explicit deactivate()
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from ..errors import ActivationError, SyncError
from ..models import ConnectionState
from ..utils.logging import get_logger
from ..utils.observable import Observable, Unsubscribe

logger = get_logger("vpn.kill_switch")


class KillSwitchPhase(str, Enum):
    DISABLED = "disabled"
    STANDBY = "standby"
    ACTIVE = "active"


@dataclass(frozen=True)
class KillSwitchStatus:
    """Current state of the kill switch."""
    phase: KillSwitchPhase = KillSwitchPhase.DISABLED
    activated_at: Optional[datetime] = None
    reason: Optional[str] = None  # manual, connection_lost, server

    @property
    def active(self) -> bool:
        return self.phase is KillSwitchPhase.ACTIVE

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "active": self.active,
            "activated_at": self.activated_at.isoformat() if self.activated_at else None,
            "reason": self.reason,
        }


class KillSwitchMonitor:
    """Single-writer state machine broadcasting every phase transition.

    Reports activations to the dashboard API when a transport is given;
    the local phase is authoritative and a failed report is only logged,
    so protection engages even when the network is already gone.
    """

    def __init__(self, transport=None):
        self._transport = transport
        self._status = KillSwitchStatus()
        self._observable: Observable[KillSwitchStatus] = Observable("kill_switch", self._status)
        self._enabled = False
        self._connected = False

    @property
    def status(self) -> KillSwitchStatus:
        return self._status

    @property
    def phase(self) -> KillSwitchPhase:
        return self._status.phase

    def is_active(self) -> bool:
        return self._status.active

    def subscribe(self, callback: Callable[[KillSwitchStatus], None]) -> Unsubscribe:
        return self._observable.subscribe(callback)

    def _transition(self, status: KillSwitchStatus) -> None:
        previous = self._status.phase
        self._status = status
        logger.info("kill_switch_transition", from_phase=previous.value, to_phase=status.phase.value, reason=status.reason)
        self._observable.emit(status)

    def _resting_phase(self) -> KillSwitchPhase:
        if self._enabled and self._connected:
            return KillSwitchPhase.STANDBY
        return KillSwitchPhase.DISABLED

    def observe(self, state: ConnectionState) -> None:
        """Store subscriber: follow the kill-switch setting and connection.

        Never leaves the active phase. Turning the setting off while traffic
        is blocked still requires an explicit deactivate().
        """
        self._enabled = state.kill_switch
        self._connected = state.connected
        if self._status.active:
            if not state.kill_switch:
                logger.warning("kill_switch_disable_while_active", message="deactivate() required to lift the block")
            return
        target = self._resting_phase()
        if target is not self._status.phase:
            self._transition(KillSwitchStatus(phase=target))

    async def activate(self, reason: str = "manual") -> None:
        """Block all non-VPN traffic."""
        if self._status.active:
            raise ActivationError("Kill switch is already active")

        self._transition(
            KillSwitchStatus(
                phase=KillSwitchPhase.ACTIVE,
                activated_at=datetime.now(timezone.utc),
                reason=reason,
            )
        )
        logger.warning("kill_switch_activated", reason=reason)

        if self._transport is not None:
            try:
                await self._transport.activate_kill_switch(reason=reason)
            except SyncError as e:
                logger.error("kill_switch_activation_report_failed", error=str(e))

    async def deactivate(self) -> None:
        """Lift the traffic block. Does not reconnect the VPN."""
        if not self._status.active:
            raise ActivationError(
                "Kill switch is not active",
                user_message="Kill switch is not currently blocking traffic",
            )

        self._transition(KillSwitchStatus(phase=self._resting_phase()))
        logger.info("kill_switch_deactivated", phase=self._status.phase.value)

        if self._transport is not None:
            try:
                await self._transport.deactivate_kill_switch()
            except SyncError as e:
                logger.error("kill_switch_deactivation_report_failed", error=str(e))

    async def handle_connection_drop(self) -> bool:
        """Engage protection after an unexpected disconnect.

        Only fires from standby, i.e. when the user enabled the kill switch
        and the tunnel was up. Returns True if the block engaged.
        """
        if self._status.phase is not KillSwitchPhase.STANDBY:
            logger.info("kill_switch_drop_ignored", phase=self._status.phase.value)
            return False
        logger.warning("kill_switch_connection_lost")
        await self.activate(reason="connection_lost")
        return True

    async def refresh(self) -> None:
        """Adopt the server-side kill-switch state."""
        if self._transport is None:
            return
        try:
            data = await self._transport.get_kill_switch_status()
        except SyncError as e:
            logger.warning("kill_switch_refresh_failed", error=str(e))
            return

        remote_active = bool(data.get("active"))
        if remote_active == self._status.active:
            return
        if remote_active:
            activated_at = data.get("activatedAt")
            self._transition(
                KillSwitchStatus(
                    phase=KillSwitchPhase.ACTIVE,
                    activated_at=datetime.fromisoformat(activated_at) if activated_at else datetime.now(timezone.utc),
                    reason=data.get("reason") or "server",
                )
            )
        else:
            self._transition(KillSwitchStatus(phase=self._resting_phase()))

    def reset(self) -> None:
        """Drop subscribers and return to disabled. Used at shutdown."""
        self._observable.clear()
        self._status = KillSwitchStatus()

    def get_status(self) -> dict:
        return {
            **self._status.to_dict(),
            "enabled": self._enabled,
            "connected": self._connected,
            "subscribers": len(self._observable),
        }
