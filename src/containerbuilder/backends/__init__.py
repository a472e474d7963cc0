"""
Container Builder Backends

- base: Backend abstract class and the subprocess-driven CommandBackend
- apptainer: ApptainerBackend for Apptainer and Singularity
- registry: DockerPublisher, pushes artifacts with python-on-whales

Usage:
    from containerbuilder.backends import create_backend
"""

import logging
import shutil
from typing import List, Optional

from .base import Backend, CommandBackend
from .apptainer import ApptainerBackend
from .registry import DockerPublisher
from .. import constants
from ..exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)


def detect_tool(preferred: str = "auto") -> str:
    """Returns the container tool to use, preferring apptainer over singularity."""
    candidates = constants.APPTAINER_TOOLS if preferred == "auto" else (preferred,)
    for tool in candidates:
        if shutil.which(tool):
            logger.info(f"Using container command: {tool}")
            return tool
    raise BackendUnavailableError(
        f"Neither {' nor '.join(candidates)} found in PATH. "
        "Please install Apptainer: https://apptainer.org/docs/admin/main/installation.html"
    )


def create_backend(kind: str = "auto", smoke: Optional[List[str]] = None) -> Backend:
    return ApptainerBackend(tool=detect_tool(kind), smoke=smoke)


__all__ = [
    'Backend',
    'CommandBackend',
    'ApptainerBackend',
    'DockerPublisher',
    'detect_tool',
    'create_backend',
]
