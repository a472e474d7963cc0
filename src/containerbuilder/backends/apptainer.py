import os
import logging
from functools import cached_property
from pathlib import Path
from typing import List, Optional, Sequence

from .base import CommandBackend
from .registry import DockerPublisher
from .. import constants
from ..constants import PrivilegeMode
from ..datacls import BuildOptions
from ..exceptions import BuildError, TestError, PushError
from ..protocols import PublisherProtocol

logger = logging.getLogger(__name__)


class ApptainerBackend(CommandBackend):
    """
    Builds SIF images with Apptainer or its predecessor Singularity.

    The two tools share a command line, only the executable differs.
    Build-time settings reach the tool through arguments and the child
    process environment, never through this process's environment.
    """

    def __init__(self, tool: str = "apptainer", smoke: Optional[List[str]] = None,
                 publisher: Optional[PublisherProtocol] = None):
        self.tool = tool
        self.name = tool
        self.smoke = list(smoke or [])
        self.publisher = publisher or DockerPublisher()

    @cached_property
    def supports_fakeroot(self) -> bool:
        try:
            usage = self._run([self.tool, "help", "build"], BuildError)
        except BuildError as e:
            logger.debug(f"[{self.name}] Could not query build options: {e}")
            return False
        return "--fakeroot" in usage

    def build_command(self, definition: Path, output: Path, options: BuildOptions) -> List[str]:
        cmd = [self.tool, "build"]
        if options.privilege == PrivilegeMode.ELEVATED:
            cmd = ["sudo", "-E"] + cmd
        elif self.supports_fakeroot:
            cmd.append("--fakeroot")
        else:
            logger.warning(f"[{self.name}] Fakeroot not available, building without it")
        if options.overwrite:
            cmd.append("--force")
        if not options.cache_enabled:
            cmd.append("--disable-cache")
        cmd += ["--tmpdir", str(options.tmp_dir.absolute()), str(output.absolute()), str(definition.absolute())]
        return cmd

    def build_env(self, options: BuildOptions) -> dict:
        env = dict(os.environ)
        if options.cache_enabled:
            for var in constants.CACHE_ENV_VARS:
                env[var] = str(options.cache_dir)
        return env

    def build(self, definition: Path, output: Path, options: BuildOptions) -> Path:
        cmd = self.build_command(definition, output, options)
        self._run(cmd, BuildError, env=self.build_env(options), cwd=options.work_dir)
        if not output.is_file():
            raise BuildError(f"{self.tool} reported success but '{output}' was not produced.")
        self.inspect(output)
        return output

    def inspect(self, artifact: Path) -> None:
        try:
            info = self._run([self.tool, "inspect", str(artifact)], BuildError)
        except BuildError as e:
            logger.warning(f"[{self.name}] Could not inspect '{artifact}': {e}")
            return
        head = "\n".join(info.splitlines()[:constants.INSPECT_HEAD_LINES])
        logger.info(f"[{self.name}] Container information for '{artifact.name}':\n{head}")

    def test(self, artifact: Path) -> None:
        self._run([self.tool, "test", str(artifact)], TestError)
        for command in self.smoke:
            logger.debug(f"[{self.name}] Smoke test in '{artifact.name}': {command}")
            self._run([self.tool, "exec", str(artifact), "sh", "-c", command], TestError)

    def push(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        if not artifact.is_file():
            raise PushError(f"Artifact '{artifact}' does not exist, nothing to push.")
        self.publisher.publish(artifact, registry_ref, tags)
