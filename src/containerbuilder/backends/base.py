import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Type

from ..datacls import BuildOptions
from ..exceptions import BackendError

logger = logging.getLogger(__name__)


class Backend(ABC):
    """
    Abstract base class for container tools.

    Subclasses wrap one tool and raise the stage-specific BackendError
    subclass on failure.
    """

    name: str = "backend"

    @abstractmethod
    def build(self, definition: Path, output: Path, options: BuildOptions) -> Path:
        raise NotImplementedError

    @abstractmethod
    def test(self, artifact: Path) -> None:
        raise NotImplementedError

    @abstractmethod
    def push(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        raise NotImplementedError


class CommandBackend(Backend):
    """
    Backend driving a command line tool through subprocess.
    """

    def _run(self, cmd: List[str], error: Type[BackendError], env: Optional[Dict[str, str]] = None,
             cwd: Optional[Path] = None) -> str:
        """Runs `cmd` to completion and returns its stdout; raises `error` on failure."""
        logger.debug(f"[{self.name}] Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True, env=env, cwd=cwd)
        except FileNotFoundError as e:
            raise error(f"Command not found: {cmd[0]} ({e})")
        except subprocess.CalledProcessError as e:
            raise error(f"'{' '.join(cmd[:2])}' exited with status {e.returncode}: {_tail(e.stderr or e.stdout)}")
        if result.stdout:
            logger.debug(f"[{self.name}] {cmd[1] if len(cmd) > 1 else cmd[0]} output:\n{result.stdout.rstrip()}")
        return result.stdout


def _tail(text: Optional[str], lines: int = 5) -> str:
    if not text:
        return "no output"
    return " | ".join(line for line in text.strip().splitlines()[-lines:])
