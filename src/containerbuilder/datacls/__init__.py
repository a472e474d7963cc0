"""
Container Builder Data Classes

- target: Target, the mutable per-target record owned by one worker
- request: BuildRequest, BuildOptions, RegistryRef (frozen configuration snapshot)
- outcome: Outcome and RunSummary

Usage:
    from containerbuilder.datacls import Target, BuildRequest, Outcome
"""

from .target import Target
from .request import BuildRequest, BuildOptions, RegistryRef
from .outcome import Outcome, RunSummary, human_size

__all__ = [
    'Target',
    'BuildRequest',
    'BuildOptions',
    'RegistryRef',
    'Outcome',
    'RunSummary',
    'human_size',
]
