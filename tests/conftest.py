import threading
import time
from pathlib import Path
from typing import Dict, List, Sequence, Set, Tuple

import pytest

from containerbuilder.config import CatalogModel
from containerbuilder.datacls import BuildOptions, BuildRequest
from containerbuilder.exceptions import BuildError, TestError, PushError


class RecordingBackend:
    """
    In-process backend that writes fake artifacts and records every call.

    `fail` maps (stage, target name) to an error message.
    """

    name = "recording"

    def __init__(self, fail: Dict[Tuple[str, str], str] = None, delay: float = 0.0):
        self.fail = fail or {}
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []
        self.tmp_dirs: Dict[str, Path] = {}
        self.pushes: List[Tuple[str, str, Tuple[str, ...]]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @staticmethod
    def target_of(path: Path) -> str:
        return path.stem.rsplit("-", 1)[-1]

    def _enter(self, stage: str, target: str):
        with self._lock:
            self.calls.append((stage, target))
            self.active += 1
            self.max_active = max(self.max_active, self.active)

    def _leave(self):
        with self._lock:
            self.active -= 1

    def _work(self, stage: str, target: str, error):
        if self.delay:
            time.sleep(self.delay)
        message = self.fail.get((stage, target))
        if message:
            raise error(message)

    def build(self, definition: Path, output: Path, options: BuildOptions) -> Path:
        target = definition.parent.name
        self._enter("build", target)
        try:
            assert options.tmp_dir.is_dir()
            assert not any(options.tmp_dir.iterdir()), "temporary directory shared with another target"
            (options.tmp_dir / "owner").write_text(target)
            with self._lock:
                self.tmp_dirs[target] = options.tmp_dir
            output.write_bytes(f"image:{target}".encode())
            self._work("build", target, BuildError)
            assert (options.tmp_dir / "owner").read_text() == target
            return output
        finally:
            self._leave()

    def test(self, artifact: Path) -> None:
        target = self.target_of(artifact)
        self._enter("test", target)
        try:
            self._work("test", target, TestError)
        finally:
            self._leave()

    def push(self, artifact: Path, registry_ref: str, tags: Sequence[str]) -> None:
        target = self.target_of(artifact)
        self._enter("push", target)
        try:
            with self._lock:
                self.pushes.append((target, registry_ref, tuple(tags)))
            self._work("push", target, PushError)
        finally:
            self._leave()

    def stages_for(self, target: str) -> List[str]:
        return [stage for stage, name in self.calls if name == target]

    @property
    def touched(self) -> Set[str]:
        return {name for _, name in self.calls}


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def make_catalog(tmp_path: Path):
    """Creates definition files for `names` and returns a catalog over them."""
    def _make(names=("rocky8", "rocky9"), missing=(), groups=None) -> CatalogModel:
        definitions = tmp_path / "containers"
        for name in names:
            if name in missing:
                continue
            target_dir = definitions / name
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / f"skipper-{name}.def").write_text(f"Bootstrap: docker\nFrom: {name}\n")
        return CatalogModel(
            definitions_dir=definitions,
            targets=list(names),
            groups=groups or {},
        )
    return _make


@pytest.fixture
def make_request(tmp_path: Path):
    def _make(**fields) -> BuildRequest:
        defaults = {
            'output_dir': tmp_path / "out",
            'cache_dir': tmp_path / "cache",
            'tmp_dir': tmp_path / "tmp",
        }
        defaults.update(fields)
        return BuildRequest.create(**defaults)
    return _make
