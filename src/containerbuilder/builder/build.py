import logging
import threading
from typing import List, Optional

from ..config import CatalogModel
from ..datacls import BuildRequest, RegistryRef, RunSummary, Target
from ..exceptions import ConfigurationError
from ..protocols import BackendProtocol
from .aggregate import Aggregator
from .gate import ArtifactGate
from .machine import TargetStateMachine
from .resolve import Resolver
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class Builder:
    """
    Orchestrates one invocation: resolve every target, decide once whether
    images are published, run the pipelines on a bounded pool and summarize.

    Resolution and configuration errors are raised before any pipeline starts.
    Per-target failures only show up in the returned RunSummary.
    """

    def __init__(self, request: BuildRequest, catalog: CatalogModel, backend: BackendProtocol,
                 stop: Optional[threading.Event] = None):
        self.request = request
        self.catalog = catalog
        self.backend = backend
        self.scheduler = Scheduler(request.parallel, fail_fast=request.fail_fast, stop=stop)
        logger.debug(f"[Builder] Initialized with backend '{getattr(backend, 'name', type(backend).__name__)}'")

    def plan(self) -> List[Target]:
        """Resolves requested names into targets without starting any work."""
        return Resolver(self.catalog, self.request.output_dir).resolve(self.request.names)

    def cancel(self):
        self.scheduler.cancel()

    def run(self) -> RunSummary:
        logger.info(f"[Builder] Output directory: {self.request.output_dir}")
        logger.info(f"[Builder] Parallel builds: {self.request.parallel}")
        targets = self.plan()
        self._prepare()
        registry = self._decide_push()

        gate = ArtifactGate(force=self.request.force)
        machines = []
        for target in targets:
            machines.append(TargetStateMachine(
                target, self.request, self.backend, gate, self.scheduler.stop,
                registry_ref=registry.image(self.catalog.image_name(target.name)) if registry else None,
                tags=registry.tags if registry else (),
            ))

        outcomes = self.scheduler.run(machines)
        return Aggregator([t.name for t in targets]).summarize(outcomes)

    def _decide_push(self) -> Optional[RegistryRef]:
        """Single publication decision for the whole run."""
        if not self.request.push:
            logger.debug("[Builder] Registry push not requested")
            return None
        if self.request.read_only:
            logger.warning("[Builder] Skipping registry push (read-only run context)")
            return None
        if self.request.registry is None:
            logger.warning("[Builder] Registry coordinates not set, skipping push")
            return None
        logger.info(f"[Builder] Images will be pushed to '{self.request.registry.url}' "
                    f"with tags {list(self.request.registry.tags)}")
        return self.request.registry

    def _prepare(self):
        dirs = [self.request.output_dir, self.request.tmp_dir]
        if self.request.cache_dir is not None:
            dirs.append(self.request.cache_dir)
            logger.info(f"[Builder] Using cache directory: {self.request.cache_dir}")
        else:
            logger.info("[Builder] Cache disabled")
        for path in dirs:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"Cannot create directory '{path}': {e}")
