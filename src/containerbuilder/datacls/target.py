import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import TargetStatus, TRANSITIONS, TERMINAL_STATUSES
from ..exceptions import TransitionError

logger = logging.getLogger(__name__)


class Target(BaseModel):
    """
        Class represents one container image to produce.

        Identifier and paths are fixed at creation; only the worker that owns
        the target moves its status forward through the lifecycle.
    """
    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(frozen=True)
    definition: Path = Field(frozen=True)
    output: Path = Field(frozen=True)
    status: TargetStatus = TargetStatus.PENDING
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def advance(self, status: TargetStatus, error: Optional[str] = None) -> None:
        """Move to `status`, refusing backward moves and re-entry of terminal states."""
        if status not in TRANSITIONS[self.status]:
            raise TransitionError(
                f"Target '{self.name}' cannot move from '{self.status.value}' to '{status.value}'."
            )
        logger.debug(f"[{self.name}] {self.status.value} -> {status.value}")
        self.status = status
        if error is not None:
            self.error = error
