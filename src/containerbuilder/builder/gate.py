import logging

from ..constants import GateDecision
from ..datacls import Target

logger = logging.getLogger(__name__)


class ArtifactGate:
    """Decides whether a target needs building or can reuse its existing artifact."""

    def __init__(self, force: bool = False):
        self.force = force

    def decide(self, target: Target) -> GateDecision:
        if target.output.is_file() and not self.force:
            logger.warning(f"[{target.name}] Container already exists: {target.output}")
            logger.warning(f"[{target.name}] Use --force to rebuild")
            return GateDecision.SKIP
        if target.output.is_file():
            logger.info(f"[{target.name}] Rebuilding existing container: {target.output}")
        return GateDecision.BUILD
