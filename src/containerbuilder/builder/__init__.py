"""
Container Builder Builder Module

- Builder: Orchestrates one invocation end to end
- Resolver: Requested names to concrete targets
- ArtifactGate: Build-or-skip decision per target
- TargetStateMachine: Per-target build -> test -> push pipeline
- Scheduler: Bounded worker pool
- Aggregator: Outcomes to RunSummary

Usage:
    from containerbuilder.builder import Builder

    builder = Builder(request, config.catalog, backend)
    summary = builder.run()
"""

from .build import Builder
from .resolve import Resolver
from .gate import ArtifactGate
from .machine import TargetStateMachine
from .scheduler import Scheduler
from .aggregate import Aggregator

__all__ = [
    'Builder',
    'Resolver',
    'ArtifactGate',
    'TargetStateMachine',
    'Scheduler',
    'Aggregator',
]
