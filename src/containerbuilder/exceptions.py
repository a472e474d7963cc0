from typing import Optional


class ContainerBuilderError(Exception):
    """Base exception for all application-specific errors."""

    pass


# --- 1. Errors related to loading and validating configuration ---
class ConfigurationError(ContainerBuilderError):
    """Base class for errors in the target catalog or the build request."""

    pass


class ConfigFileMissingError(ConfigurationError):
    """Raised when the catalog file cannot be found."""

    pass


class ConfigParsingError(ConfigurationError):
    """Raised when a YAML catalog file is syntactically incorrect."""

    pass


class ConfigValidationError(ConfigurationError):
    """Raised when the configuration fails structural validation (e.g., Pydantic)."""

    pass


class BackendUnavailableError(ConfigurationError):
    """Raised when no usable container tool is found on PATH."""

    pass


# --- 2. Errors raised while turning requested names into targets ---
class ResolutionError(ContainerBuilderError):
    """Base class for errors that abort a run before anything is scheduled."""

    pass


class InvalidTargetError(ResolutionError):
    """Raised when a requested name is neither a target nor a group."""

    pass


class TargetNotFoundError(ResolutionError):
    """Raised when a target's definition file does not exist."""

    def __init__(self, target: str, path):
        self.target = target
        self.path = path
        super().__init__(f"Definition file for target '{target}' not found: {path}")


# --- 3. Per-target errors reported by a backend ---
class BackendError(ContainerBuilderError):
    """Base class for failures of a single pipeline stage of one target."""

    stage: Optional[str] = None


class BuildError(BackendError):
    """Raised when an image fails to build."""

    stage = "build"


class TestError(BackendError):
    """Raised when a built image fails its tests."""

    __test__ = False
    stage = "test"


class PushError(BackendError):
    """Raised when a built image cannot be published."""

    stage = "push"


# --- 4. Internal invariants ---
class TransitionError(ContainerBuilderError):
    """Raised on an illegal move in the per-target lifecycle."""

    pass


class AggregationError(ContainerBuilderError):
    """Raised when collected outcomes do not match the resolved targets."""

    pass
