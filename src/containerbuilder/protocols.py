"""
Container Builder Protocol Definitions

Protocols are the foundation layer with zero dependencies on other containerbuilder modules.
"""

from pathlib import Path
from typing import Protocol, Sequence, Any, runtime_checkable


# ============================================================================
# Backend Protocols
# ============================================================================

@runtime_checkable
class BackendProtocol(Protocol):
    """
    Protocol for the tool that builds, tests and publishes images.

    Every call blocks until the tool returns. Failures are raised as
    BuildError, TestError or PushError respectively.
    """

    name: str

    def build(self, definition: Path, output: Path, options: Any) -> Path:
        """
        Build an image from a definition file.

        Args:
            definition: Path of the definition file
            output: Path the artifact is written to
            options: BuildOptions with tmp_dir, cache_dir, privilege and overwrite

        Returns:
            Path of the produced artifact
        """
        ...

    def test(self, artifact: Path) -> None:
        """
        Exercise a built image.

        Args:
            artifact: Path of the built artifact
        """
        ...

    def push(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        """
        Publish an image under each tag, in order.

        Args:
            artifact: Path of the built artifact
            registry_ref: Repository reference, e.g. `ghcr.io/acme/hpc-spack-rocky8`
            tags: Ordered tags to publish
        """
        ...


# ============================================================================
# Publisher Protocols
# ============================================================================

@runtime_checkable
class PublisherProtocol(Protocol):
    """
    Protocol for pushing a local artifact to a registry.
    """

    def publish(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        ...
