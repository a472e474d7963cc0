"""
Registry publication through the Docker CLI.

A SIF artifact is imported as a Docker image, tagged once per requested tag
and pushed in tag order.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional, Sequence

from python_on_whales import DockerClient
from python_on_whales.exceptions import DockerException

from ..exceptions import PushError

logger = logging.getLogger(__name__)


class DockerPublisher:

    def __init__(self, client: Optional[DockerClient] = None, binary: str = "docker"):
        self.client = client
        self.binary = binary

    def _client(self) -> DockerClient:
        if self.client is None:
            if shutil.which(self.binary) is None:
                raise PushError(f"Docker not available ('{self.binary}' not on PATH), cannot push.")
            self.client = DockerClient()
        return self.client

    def publish(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        if not tags:
            raise PushError(f"No tags given for '{registry_ref}'.")
        client = self._client()
        refs = [f"{registry_ref}:{tag}" for tag in tags]
        primary = refs[0]
        try:
            logger.info(f"[Registry] Importing '{artifact}' as '{primary}'...")
            client.image.import_(str(artifact), tag=primary)
            for ref in refs[1:]:
                logger.debug(f"[Registry] Tagging '{primary}' as '{ref}'")
                client.image.tag(primary, ref)
            for ref in refs:
                logger.info(f"[Registry] Pushing '{ref}'...")
                client.image.push(ref, quiet=True)
        except DockerException as e:
            raise PushError(f"Pushing '{primary}' failed: {e}")
        logger.info(f"[Registry] Container pushed to registry: {', '.join(refs)}")
