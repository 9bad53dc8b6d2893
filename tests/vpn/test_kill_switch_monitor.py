"""Tests for the kill-switch monitor state machine."""

import pytest

from vpnsync.errors import ActivationError, TransportError
from vpnsync.models import ConnectionState
from vpnsync.vpn.kill_switch import KillSwitchMonitor, KillSwitchPhase, KillSwitchStatus

CONNECTED = ConnectionState(connected=True, kill_switch=True)
DISCONNECTED = ConnectionState(connected=False, kill_switch=True)


class TestKillSwitchStatus:
    def test_defaults(self):
        status = KillSwitchStatus()
        assert status.phase is KillSwitchPhase.DISABLED
        assert status.active is False

    def test_to_dict(self):
        data = KillSwitchStatus(phase=KillSwitchPhase.ACTIVE, reason="manual").to_dict()
        assert data["phase"] == "active"
        assert data["active"] is True
        assert data["activated_at"] is None


class TestObserve:
    def setup_method(self):
        self.monitor = KillSwitchMonitor()
        self.phases = []
        self.monitor.subscribe(lambda status: self.phases.append(status.phase))

    def test_standby_when_enabled_and_connected(self):
        self.monitor.observe(CONNECTED)
        assert self.monitor.phase is KillSwitchPhase.STANDBY
        assert self.phases == [KillSwitchPhase.STANDBY]

    def test_disabled_when_setting_off(self):
        self.monitor.observe(CONNECTED)
        self.monitor.observe(CONNECTED.with_changes(kill_switch=False))
        assert self.monitor.phase is KillSwitchPhase.DISABLED

    def test_disabled_after_disconnect(self):
        self.monitor.observe(CONNECTED)
        self.monitor.observe(DISCONNECTED)
        assert self.phases == [KillSwitchPhase.STANDBY, KillSwitchPhase.DISABLED]

    def test_repeated_state_does_not_emit(self):
        self.monitor.observe(CONNECTED)
        self.monitor.observe(CONNECTED)
        assert self.phases == [KillSwitchPhase.STANDBY]

    @pytest.mark.asyncio
    async def test_active_is_sticky(self):
        """Only deactivate() leaves the active phase."""
        self.monitor.observe(CONNECTED)
        await self.monitor.activate()

        self.monitor.observe(DISCONNECTED.with_changes(kill_switch=False))

        assert self.monitor.phase is KillSwitchPhase.ACTIVE


class TestActivation:
    def setup_method(self):
        self.monitor = KillSwitchMonitor()

    @pytest.mark.asyncio
    async def test_manual_activation_from_disabled(self):
        await self.monitor.activate()
        assert self.monitor.is_active()
        assert self.monitor.status.reason == "manual"
        assert self.monitor.status.activated_at is not None

    @pytest.mark.asyncio
    async def test_activate_twice_raises(self):
        await self.monitor.activate()
        with pytest.raises(ActivationError):
            await self.monitor.activate()

    @pytest.mark.asyncio
    async def test_deactivate_when_inactive_raises(self):
        with pytest.raises(ActivationError):
            await self.monitor.deactivate()

    @pytest.mark.asyncio
    async def test_deactivate_returns_to_standby(self):
        self.monitor.observe(CONNECTED)
        await self.monitor.activate()
        await self.monitor.deactivate()
        assert self.monitor.phase is KillSwitchPhase.STANDBY

    @pytest.mark.asyncio
    async def test_deactivate_after_drop_returns_to_disabled(self):
        self.monitor.observe(CONNECTED)
        await self.monitor.handle_connection_drop()
        self.monitor.observe(DISCONNECTED)

        await self.monitor.deactivate()

        assert self.monitor.phase is KillSwitchPhase.DISABLED

    @pytest.mark.asyncio
    async def test_connection_drop_only_from_standby(self):
        assert await self.monitor.handle_connection_drop() is False
        assert self.monitor.phase is KillSwitchPhase.DISABLED

        self.monitor.observe(CONNECTED)
        assert await self.monitor.handle_connection_drop() is True
        assert self.monitor.status.reason == "connection_lost"


class TestRemoteReporting:
    @pytest.mark.asyncio
    async def test_activation_reported(self, mock_transport):
        monitor = KillSwitchMonitor(transport=mock_transport)
        await monitor.activate(reason="manual")
        await monitor.deactivate()

        mock_transport.activate_kill_switch.assert_awaited_once_with(reason="manual")
        mock_transport.deactivate_kill_switch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_report_failure_keeps_local_phase(self, mock_transport):
        """The block engages even when the API cannot be reached."""
        mock_transport.activate_kill_switch.side_effect = TransportError("offline")
        monitor = KillSwitchMonitor(transport=mock_transport)

        await monitor.activate()

        assert monitor.is_active()

    @pytest.mark.asyncio
    async def test_refresh_adopts_remote_active(self, mock_transport):
        mock_transport.get_kill_switch_status.return_value = {
            "active": True,
            "activatedAt": "2026-10-19T06:00:00+00:00",
            "reason": "connection_lost",
        }
        monitor = KillSwitchMonitor(transport=mock_transport)

        await monitor.refresh()

        assert monitor.is_active()
        assert monitor.status.reason == "connection_lost"
        assert monitor.status.activated_at.hour == 6

    @pytest.mark.asyncio
    async def test_refresh_adopts_remote_inactive(self, mock_transport):
        monitor = KillSwitchMonitor(transport=mock_transport)
        monitor.observe(CONNECTED)
        await monitor.activate()

        await monitor.refresh()

        assert monitor.phase is KillSwitchPhase.STANDBY

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_phase(self, mock_transport):
        mock_transport.get_kill_switch_status.side_effect = TransportError("offline")
        monitor = KillSwitchMonitor(transport=mock_transport)

        await monitor.refresh()

        assert monitor.phase is KillSwitchPhase.DISABLED

    def test_reset(self):
        monitor = KillSwitchMonitor()
        monitor.subscribe(lambda status: None)
        monitor.observe(CONNECTED)

        monitor.reset()

        assert monitor.phase is KillSwitchPhase.DISABLED
        assert monitor.get_status()["subscribers"] == 0
