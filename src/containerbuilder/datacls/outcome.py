from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .. import constants
from ..constants import TargetStatus


class Outcome(BaseModel):
    """
        Class represents the final result of one target's pipeline.
    """
    model_config = ConfigDict(frozen=True)

    target: str
    status: TargetStatus
    duration: float = 0.0
    error: Optional[str] = None
    artifact: Optional[Path] = None

    @property
    def succeeded(self) -> bool:
        return self.status == TargetStatus.DONE

    @property
    def failed(self) -> bool:
        return self.status == TargetStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == TargetStatus.SKIPPED


def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024


class RunSummary(BaseModel):
    """
        Class aggregates every Outcome of a run, ordered as the targets were resolved.
    """
    model_config = ConfigDict(frozen=True)

    outcomes: Tuple[Outcome, ...] = ()

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failures(self) -> List[Outcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def ok(self) -> bool:
        return all(o.succeeded or o.skipped for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return constants.EXIT_OK if self.ok else constants.EXIT_FAILED

    def render(self) -> str:
        lines = [
            f"Targets: {self.total}  done: {self.succeeded}  skipped: {self.skipped}  failed: {self.failed}"
        ]
        artifacts = [o for o in self.outcomes if o.artifact is not None and o.artifact.is_file()]
        if artifacts:
            lines.append("Built containers:")
            for o in artifacts:
                lines.append(f"  {o.artifact} ({human_size(o.artifact.stat().st_size)})")
        if self.failures:
            lines.append("Failed targets:")
            for o in self.failures:
                lines.append(f"  {o.target}: {o.error or 'unknown error'}")
        return "\n".join(lines)
