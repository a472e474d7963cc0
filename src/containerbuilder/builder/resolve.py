import logging
from pathlib import Path
from typing import Dict, List, Sequence

from .. import constants
from ..config import CatalogModel
from ..datacls import Target
from ..exceptions import InvalidTargetError, TargetNotFoundError

logger = logging.getLogger(__name__)


class Resolver:
    """
    Turns requested names into concrete targets.

    Groups are expanded through the catalog, duplicates dropped keeping the
    first occurrence, and every definition file checked before anything is
    scheduled.
    """

    def __init__(self, catalog: CatalogModel, output_dir: Path):
        self.catalog = catalog
        self.output_dir = output_dir

    def names(self, requested: Sequence[str]) -> List[str]:
        """Expanded, deduplicated target names in first-seen order."""
        if not requested:
            logger.debug(f"[Resolver] No targets requested, defaulting to '{constants.GROUP_ALL}'")
            requested = [constants.GROUP_ALL]

        unknown = [name for name in requested
                   if name not in self.catalog.targets and not self.catalog.is_group(name)]
        if unknown:
            raise InvalidTargetError(
                f"Unknown target(s): {', '.join(unknown)}. "
                f"Valid names: {', '.join(self.catalog.targets + list(self.catalog.all_groups))}."
            )

        ordered: Dict[str, None] = {}
        for name in requested:
            for target in self.catalog.expand(name):
                ordered.setdefault(target, None)
        return list(ordered)

    def resolve(self, requested: Sequence[str]) -> List[Target]:
        targets = []
        for name in self.names(requested):
            definition = self.catalog.definition_path(name)
            if not definition.is_file():
                raise TargetNotFoundError(name, definition)
            targets.append(Target(
                name=name,
                definition=definition,
                output=self.catalog.artifact_path(name, self.output_dir),
            ))
            logger.debug(f"[Resolver] '{name}': {definition} -> {targets[-1].output}")
        logger.info(f"[Resolver] Targets: {' '.join(t.name for t in targets)}")
        return targets
