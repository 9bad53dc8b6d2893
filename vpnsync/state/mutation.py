"""Two-phase record of one optimistic settings mutation.

A mutation starts ``pending`` when the value is applied locally and ends
either ``committed`` (remote write accepted) or ``rolled_back`` (remote
write failed and the previous value was restored). No other transitions
are legal.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class MutationPhase(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Mutation:
    setting: str
    previous: Any
    requested: Any
    phase: MutationPhase = MutationPhase.PENDING
    server_value: Any = None
    error: Optional[Exception] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None

    @property
    def pending(self) -> bool:
        return self.phase is MutationPhase.PENDING

    @property
    def committed(self) -> bool:
        return self.phase is MutationPhase.COMMITTED

    @property
    def rolled_back(self) -> bool:
        return self.phase is MutationPhase.ROLLED_BACK

    def _resolve(self, phase: MutationPhase) -> None:
        if self.phase is not MutationPhase.PENDING:
            raise RuntimeError(f"Mutation of {self.setting} already {self.phase.value}")
        self.phase = phase
        self.resolved_at = datetime.now(timezone.utc)

    def commit(self, server_value: Any) -> None:
        self._resolve(MutationPhase.COMMITTED)
        self.server_value = server_value

    def roll_back(self, error: Exception) -> None:
        self._resolve(MutationPhase.ROLLED_BACK)
        self.error = error

    def to_dict(self) -> dict:
        return {
            "setting": self.setting,
            "previous": getattr(self.previous, "value", self.previous),
            "requested": getattr(self.requested, "value", self.requested),
            "phase": self.phase.value,
            "server_value": getattr(self.server_value, "value", self.server_value),
            "error": str(self.error) if self.error else None,
            "started_at": self.started_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }
