"""Connection state store, toggle controls and mutation records."""

from .mutation import Mutation, MutationPhase
from .store import ConnectionStateStore, ErrorEvent
from .toggle import ToggleControl

__all__ = [
    "ConnectionStateStore",
    "ErrorEvent",
    "Mutation",
    "MutationPhase",
    "ToggleControl",
]
