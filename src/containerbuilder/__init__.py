"""
Container Builder

Builds container images from definition files, optionally tests and
publishes them, running several targets in parallel on a bounded pool.

Main modules:
- builder: Target resolution, artifact gate, per-target state machine,
  scheduler and result aggregation
- backends: Apptainer/Singularity backend and registry publisher
- config: Target catalog loading and validation
- datacls: Target, BuildRequest, Outcome and RunSummary models
- ci: Run context detection for GitHub Actions and GitLab CI
- utils: Logging setup

Quick start example:
```python
from containerbuilder import Builder, BuildRequest, Config, create_backend

config = Config()
request = BuildRequest.create(names=("rocky8",), parallel=2, test=True)
summary = Builder(request, config.catalog, create_backend()).run()
print(summary.render())
```
"""

__version__ = "0.3.0"

from .config import Config, CatalogModel
from .datacls import Target, BuildRequest, BuildOptions, RegistryRef, Outcome, RunSummary
from .builder import Builder
from .backends import Backend, ApptainerBackend, create_backend
from .ci import RunContext
from .exceptions import (
    ContainerBuilderError,
    ConfigurationError,
    ResolutionError,
    InvalidTargetError,
    TargetNotFoundError,
    BackendError,
    BuildError,
    TestError,
    PushError,
)

__all__ = [
    # Version
    '__version__',
    # Config
    'Config',
    'CatalogModel',
    # Data classes
    'Target',
    'BuildRequest',
    'BuildOptions',
    'RegistryRef',
    'Outcome',
    'RunSummary',
    # Builder
    'Builder',
    # Backends
    'Backend',
    'ApptainerBackend',
    'create_backend',
    'RunContext',
    # Exceptions
    'ContainerBuilderError',
    'ConfigurationError',
    'ResolutionError',
    'InvalidTargetError',
    'TargetNotFoundError',
    'BackendError',
    'BuildError',
    'TestError',
    'PushError',
]
