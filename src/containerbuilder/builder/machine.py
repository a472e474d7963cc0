import time
import shutil
import logging
import threading
from typing import Callable, Optional, Sequence

from ..constants import GateDecision, Stage, TargetStatus
from ..datacls import BuildRequest, Outcome, Target
from ..exceptions import BackendError, BuildError
from ..protocols import BackendProtocol
from .gate import ArtifactGate

logger = logging.getLogger(__name__)


class TargetStateMachine:
    """
    Runs one target through Pending -> Building -> Testing -> Pushing -> Done.

    The instance owns its Target for its whole life. Backend failures end the
    pipeline in Failed and never propagate. The stop event is checked before
    every stage; a stage already running is always allowed to finish.
    """

    def __init__(self, target: Target, request: BuildRequest, backend: BackendProtocol,
                 gate: ArtifactGate, stop: threading.Event,
                 registry_ref: Optional[str] = None, tags: Sequence[str] = ()):
        self.target = target
        self.request = request
        self.backend = backend
        self.gate = gate
        self.stop = stop
        self.registry_ref = registry_ref
        self.tags = tuple(tags)

    @property
    def name(self) -> str:
        return self.target.name

    def run(self) -> Outcome:
        started = time.monotonic()
        try:
            self._pipeline()
        except Exception as e:
            logger.exception(f"[{self.name}] Unexpected error: {e}")
            if not self.target.terminal:
                self.target.advance(TargetStatus.FAILED, error=f"unexpected error: {e}")
        duration = time.monotonic() - started
        if self.target.status == TargetStatus.DONE:
            logger.info(f"[{self.name}] Done in {duration:.1f}s")
        return Outcome(
            target=self.name,
            status=self.target.status,
            duration=duration,
            error=self.target.error,
            artifact=self.target.output if self.target.output.is_file() else None,
        )

    def _pipeline(self):
        if self.gate.decide(self.target) == GateDecision.SKIP:
            self.target.advance(TargetStatus.SKIPPED)
            return
        if self._cancelled(Stage.BUILD):
            return

        self.target.advance(TargetStatus.BUILDING)
        if not self._attempt(Stage.BUILD, self._build):
            return

        if self.request.test:
            if self._cancelled(Stage.TEST):
                return
            self.target.advance(TargetStatus.TESTING)
            logger.info(f"[{self.name}] Running container tests...")
            if not self._attempt(Stage.TEST, lambda: self.backend.test(self.target.output)):
                return
            logger.info(f"[{self.name}] Container tests passed")

        if self.registry_ref:
            if self._cancelled(Stage.PUSH):
                return
            self.target.advance(TargetStatus.PUSHING)
            logger.info(f"[{self.name}] Pushing to '{self.registry_ref}' with tags {list(self.tags)}...")
            if not self._attempt(Stage.PUSH, lambda: self.backend.push(self.target.output, self.registry_ref, self.tags)):
                return

        self.target.advance(TargetStatus.DONE)

    def _build(self):
        options = self.request.options_for(self.name)
        logger.info(f"[{self.name}] Building container")
        logger.info(f"[{self.name}] Definition file: {self.target.definition}")
        logger.info(f"[{self.name}] Output file: {self.target.output}")
        try:
            options.tmp_dir.mkdir(parents=True, exist_ok=True)
            self.target.output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildError(f"Cannot prepare build directories: {e}")
        previous = self._snapshot()
        try:
            self.backend.build(self.target.definition, self.target.output, options)
        except BackendError:
            if self._snapshot() != previous:
                self._discard_output()
            raise
        finally:
            self._cleanup(options.tmp_dir)
        logger.info(f"[{self.name}] Container built successfully: {self.target.output}")

    def _attempt(self, stage: Stage, call: Callable[[], None]) -> bool:
        try:
            call()
        except BackendError as e:
            message = f"{stage.value} failed: {e}"
            logger.error(f"[{self.name}] {message}")
            self.target.advance(TargetStatus.FAILED, error=message)
            return False
        return True

    def _cancelled(self, stage: Stage) -> bool:
        if not self.stop.is_set():
            return False
        message = f"cancelled before {stage.value}"
        logger.warning(f"[{self.name}] Stop requested, {message}")
        self.target.advance(TargetStatus.FAILED, error=message)
        return True

    def _snapshot(self):
        """(mtime, size) of the current output, None when there is none."""
        try:
            stat = self.target.output.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def _discard_output(self):
        """A failed build must not leave an artifact the gate would later reuse.

        Only called when the failed attempt wrote to the output; an untouched
        artifact from an earlier run is kept.
        """
        if not self.target.output.exists():
            return
        try:
            self.target.output.unlink()
            logger.debug(f"[{self.name}] Removed partial output '{self.target.output}'")
        except OSError as e:
            logger.warning(f"[{self.name}] Could not remove partial output '{self.target.output}': {e}")

    def _cleanup(self, tmp_dir):
        try:
            shutil.rmtree(tmp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[{self.name}] Could not remove temporary directory '{tmp_dir}': {e}")
