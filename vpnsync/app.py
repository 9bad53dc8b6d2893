"""vpnsync application container.

Constructs the transport, kill-switch monitor, state store and connection
watchdog explicitly at start and tears them down at shutdown. Nothing is a
module-level singleton, so tests can build isolated instances.
"""

from typing import Optional

from .config import VpnSyncConfig, get_config
from .state.store import ConnectionStateStore
from .transport.settings_api import SettingsTransport
from .utils.logging import get_logger, setup_logging
from .vpn.kill_switch import KillSwitchMonitor, KillSwitchPhase, KillSwitchStatus
from .vpn.watchdog import ConnectionWatchdog

logger = get_logger("vpnsync.app")


class VpnSyncApp:
    """Owns one wired set of sync-core components for an application session."""

    def __init__(
        self,
        config: Optional[VpnSyncConfig] = None,
        transport: Optional[SettingsTransport] = None,
        configure_logging: bool = False,
    ):
        self.config = config or get_config()
        if configure_logging:
            setup_logging(
                debug=self.config.debug,
                log_dir=self.config.log_dir,
                log_max_bytes=self.config.log_max_bytes,
                log_backup_count=self.config.log_backup_count,
                log_name=f"{self.config.app_name}.log",
                app_name=self.config.app_name,
            )

        self.transport = transport or SettingsTransport.from_config(self.config)
        self.kill_switch = KillSwitchMonitor(transport=self.transport)
        self.store = ConnectionStateStore.from_config(self.transport, self.kill_switch, self.config)
        self.watchdog = ConnectionWatchdog.from_config(self.transport, self.store.connection_lost, self.config)
        self._unsubscribe = self.kill_switch.subscribe(self._on_kill_switch)
        self.started = False

    def _on_kill_switch(self, status: KillSwitchStatus) -> None:
        # Watch the tunnel only while protection is armed
        if status.phase is KillSwitchPhase.STANDBY:
            self.watchdog.start()
        else:
            self.watchdog.cancel()

    async def start(self) -> None:
        """Seed state from the dashboard API."""
        logger.info("vpnsync_starting", api=self.transport.base_url)
        await self.store.load()
        await self.kill_switch.refresh()
        self.started = True
        state = self.store.state
        logger.info(
            "vpnsync_started",
            connected=state.connected,
            subscription=state.subscription.value,
            kill_switch_phase=self.kill_switch.phase.value,
        )

    async def shutdown(self) -> None:
        """Stop background work and drop every subscription."""
        logger.info("vpnsync_stopping")
        await self.watchdog.stop()
        self._unsubscribe()
        self.store.close()
        self.kill_switch.reset()
        self.started = False
        logger.info("vpnsync_stopped")

    async def __aenter__(self) -> "VpnSyncApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    def health_check(self) -> dict:
        return {
            "status": "running" if self.started else "stopped",
            "details": {
                "store": self.store.get_status(),
                "kill_switch": self.kill_switch.get_status(),
                "watchdog_running": self.watchdog.running,
                "transport": self.transport.get_stats(),
            },
        }
