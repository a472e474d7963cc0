import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future, wait, FIRST_COMPLETED
from typing import Dict, List, Optional, Sequence

from .. import constants
from ..constants import TargetStatus
from ..datacls import Outcome
from ..exceptions import ConfigValidationError
from .machine import TargetStateMachine

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Bounded worker pool running one state machine per target.

    At most `parallel` pipelines run at once and targets are admitted in the
    order given. The run only returns once every admitted target is terminal.
    A failing target never stops the others unless `fail_fast` is set, in
    which case the shared stop event is raised and every worker stops before
    its next stage. Ctrl-C raises the same stop event.
    """

    def __init__(self, parallel: int = 1, fail_fast: bool = False, stop: Optional[threading.Event] = None):
        if parallel < 1:
            raise ConfigValidationError(f"Parallelism must be at least 1, got {parallel}.")
        self.parallel = parallel
        self.fail_fast = fail_fast
        self.stop = stop if stop is not None else threading.Event()

    def cancel(self):
        if not self.stop.is_set():
            logger.warning("[Scheduler] Stop requested, no new stage will start")
            self.stop.set()

    def run(self, machines: Sequence[TargetStateMachine]) -> List[Outcome]:
        if not machines:
            return []
        logger.info(f"[Scheduler] Building {len(machines)} container(s) with parallelism: {self.parallel}")

        outcomes: Dict[str, Outcome] = {}
        with ThreadPoolExecutor(max_workers=self.parallel,
                                thread_name_prefix=constants.WORKER_THREAD_PREFIX) as executor:
            futures: Dict[Future, TargetStateMachine] = {}
            queued = list(machines)
            while queued or len(outcomes) < len(futures):
                try:
                    while queued:
                        futures[executor.submit(self._work, queued[0])] = queued.pop(0)
                    pending = [f for f, m in futures.items() if m.name not in outcomes]
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    logger.warning("[Scheduler] Interrupted, waiting for running stages to finish...")
                    self.cancel()
                    continue
                for future in done:
                    outcome = self._collect(future, futures[future])
                    outcomes[outcome.target] = outcome

        logger.info("[Scheduler] All targets reached a terminal state")
        return [outcomes[m.name] for m in machines]

    def _work(self, machine: TargetStateMachine) -> Outcome:
        """Runs in a worker; the stop is raised before this worker takes its next target."""
        outcome = machine.run()
        if outcome.status == TargetStatus.FAILED and self.fail_fast:
            self.cancel()
        return outcome

    def _collect(self, future: Future, machine: TargetStateMachine) -> Outcome:
        outcome = future.result()
        if outcome.status == TargetStatus.FAILED:
            logger.error(f"[Scheduler] Build failed for {outcome.target}: {outcome.error}")
        else:
            logger.debug(f"[Scheduler] '{machine.name}' finished as {outcome.status.value}")
        return outcome
