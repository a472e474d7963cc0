import logging
from typing import Iterable, Sequence

from ..datacls import Outcome, RunSummary
from ..exceptions import AggregationError

logger = logging.getLogger(__name__)


class Aggregator:
    """Combines per-target outcomes into a RunSummary ordered as resolved."""

    def __init__(self, order: Sequence[str]):
        self.order = list(order)

    def summarize(self, outcomes: Iterable[Outcome]) -> RunSummary:
        by_target = {}
        for outcome in outcomes:
            if outcome.target in by_target:
                raise AggregationError(f"Duplicate outcome for target '{outcome.target}'.")
            by_target[outcome.target] = outcome

        missing = [name for name in self.order if name not in by_target]
        extra = [name for name in by_target if name not in self.order]
        if missing or extra:
            raise AggregationError(f"Outcomes do not match resolved targets (missing: {missing}, unexpected: {extra}).")

        summary = RunSummary(outcomes=tuple(by_target[name] for name in self.order))
        if summary.ok:
            logger.info(f"[Aggregator] All container builds completed successfully! "
                        f"({summary.succeeded} built, {summary.skipped} skipped)")
        else:
            logger.error(f"[Aggregator] {summary.failed} container build(s) failed")
        return summary
