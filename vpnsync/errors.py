"""Error taxonomy for the settings synchronization core.

Every failure that reaches the store or its subscribers is one of these
kinds. Raw httpx exceptions are converted at the transport boundary.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all vpnsync errors."""

    user_message = "Something went wrong"

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InvalidStateError(SyncError):
    """Mutation attempted while the current connection state disallows it."""

    user_message = "Disconnect from the VPN before changing this setting"


class AuthorizationError(SyncError):
    """Entitlement or plan restriction (HTTP 401/403, or no feature access)."""

    user_message = "Upgrade your plan to use this feature"

    def __init__(
        self,
        message: str = "",
        user_message: Optional[str] = None,
        feature: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, user_message)
        self.feature = feature
        self.status_code = status_code


class TransportError(SyncError):
    """Network failure or non-2xx response other than 401/403."""

    user_message = "Failed to update settings. Please try again"

    def __init__(
        self,
        message: str = "",
        user_message: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, user_message)
        self.status_code = status_code


class ActivationError(SyncError):
    """Kill switch is already in the state the transition requires leaving."""

    user_message = "Kill switch is already in that state"
