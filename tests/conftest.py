"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from vpnsync.models import ServerRef, SessionInfo, SettingsRecord, UserAccount
from vpnsync.transport.settings_api import SettingsTransport, build_settings_payload


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def echo_update(name, value):
    """Server that accepts every write and echoes it back."""
    return SettingsRecord.model_validate(build_settings_payload(name, value))


def make_server(server_id: int = 1, **overrides) -> ServerRef:
    data = {
        "id": server_id,
        "name": f"Frankfurt #{server_id}",
        "country": "Germany",
        "city": "Frankfurt",
        "region": "Europe",
        "latency": 24,
        "load": 35,
        "premium": False,
    }
    data.update(overrides)
    return ServerRef.model_validate(data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server():
    return make_server()


@pytest.fixture
def mock_transport(server):
    """AsyncMock transport whose endpoints all succeed."""
    transport = AsyncMock(spec=SettingsTransport)
    transport.base_url = "http://api.test/api"
    transport.check_feature_access.return_value = True
    transport.update_field.side_effect = echo_update
    transport.get_settings.return_value = SettingsRecord()
    transport.get_current_session.return_value = None
    transport.get_user.return_value = UserAccount(subscription="premium")
    transport.list_servers.return_value = [server]
    transport.start_session.return_value = SessionInfo.model_validate(
        {"id": 7, "serverId": server.id, "startTime": "2026-10-19T08:00:00+00:00", "virtualIp": "10.91.119.161"}
    )
    transport.end_session.return_value = True
    transport.ping.return_value = 0.02
    transport.get_kill_switch_status.return_value = {"active": False}
    transport.get_stats = MagicMock(return_value={"total_requests": 0, "total_failures": 0})
    return transport


def make_response(status_code=200, json_data=None, body=None):
    """Build a real httpx Response bound to a request, so raise_for_status works."""
    request = httpx.Request("GET", "http://api.test/api")
    if body is not None:
        return httpx.Response(status_code, content=body, request=request)
    return httpx.Response(status_code, json=json_data, request=request)


def mock_httpx_client(mock_client_class, response=None, side_effect=None):
    """Wire a patched httpx.AsyncClient class to return ``response``."""
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.request = AsyncMock(side_effect=side_effect)
    else:
        mock_client.request = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_class.return_value = mock_client
    return mock_client
