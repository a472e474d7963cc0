"""
Build request data classes

A BuildRequest is the configuration snapshot of one invocation. It is built
once, frozen, and shared by reference with every worker.
"""

from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .. import constants
from ..constants import PrivilegeMode
from ..exceptions import ConfigValidationError


class RegistryRef(BaseModel):
    """
        Class describes where images are published: a registry namespace
        (e.g. `ghcr.io/acme`) and the ordered tags every image receives.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    tags: Tuple[str, ...] = (constants.LATEST_TAG,)

    @field_validator('url')
    @classmethod
    def strip_url(cls, value: str) -> str:
        value = value.strip().rstrip('/')
        if not value:
            raise ConfigValidationError("Registry URL must not be empty.")
        return value

    @field_validator('tags')
    @classmethod
    def dedupe_tags(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        tags = tuple(dict.fromkeys(tag.strip() for tag in value if tag and tag.strip()))
        if not tags:
            raise ConfigValidationError("At least one registry tag is required.")
        return tags

    def image(self, repository: str) -> str:
        return f"{self.url}/{repository}"


class BuildOptions(BaseModel):
    """
        Class carries the build-time parameters handed to a backend for one target.
    """
    model_config = ConfigDict(frozen=True)

    tmp_dir: Path
    cache_dir: Optional[Path] = None
    privilege: PrivilegeMode = PrivilegeMode.UNPRIVILEGED
    overwrite: bool = False
    work_dir: Optional[Path] = None

    @property
    def cache_enabled(self) -> bool:
        return self.cache_dir is not None


class BuildRequest(BaseModel):
    """
        Class Config-Validation Model describing one invocation.

        `cache_dir` set to None disables the build cache. `read_only` marks a
        run whose trigger must never publish (e.g. a pull request). `work_dir`
        is where the tool runs, so relative paths inside definitions resolve
        against it.
    """
    model_config = ConfigDict(frozen=True)

    names: Tuple[str, ...] = ()
    parallel: int = constants.DEFAULT_PARALLEL
    force: bool = False
    test: bool = False
    push: bool = False
    fail_fast: bool = False
    read_only: bool = False
    output_dir: Path = Path(constants.DEFAULT_DEFINITIONS_DIR)
    cache_dir: Optional[Path] = Field(default_factory=lambda: Path(constants.DEFAULT_CACHE_DIR).expanduser())
    tmp_dir: Path = Path(constants.DEFAULT_TMPDIR)
    privilege: PrivilegeMode = PrivilegeMode.UNPRIVILEGED
    registry: Optional[RegistryRef] = None
    work_dir: Optional[Path] = None

    @field_validator('parallel')
    @classmethod
    def check_parallel(cls, value: int) -> int:
        if value < 1:
            raise ConfigValidationError(f"Parallelism must be at least 1, got {value}.")
        return value

    @model_validator(mode='after')
    def check_shared_dirs(self) -> 'BuildRequest':
        """Cache and temporary directories must not be the same path"""
        if self.cache_dir is not None and self.cache_dir.resolve() == self.tmp_dir.resolve():
            raise ConfigValidationError(
                f"Cache directory and temporary directory must differ, both are '{self.tmp_dir}'."
            )
        return self

    @classmethod
    def create(cls, **fields) -> 'BuildRequest':
        try:
            return cls.model_validate(fields)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid build request:\n{e}")

    def options_for(self, target: str) -> BuildOptions:
        """Build options for one target with its own temporary subdirectory."""
        return BuildOptions(
            tmp_dir=self.tmp_dir / f"{constants.TMP_SUBDIR_PREFIX}{target}",
            cache_dir=self.cache_dir,
            privilege=self.privilege,
            overwrite=self.force,
            work_dir=self.work_dir,
        )
