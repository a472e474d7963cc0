"""
Run context detection

CI providers expose whether a run may publish and where to publish through
different environment variables. This module reduces them to one read-only
flag and optional registry coordinates, which the CLI hands to the core.
"""

import logging
import os
import re
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from . import constants
from .constants import CIProvider
from .datacls import RegistryRef

logger = logging.getLogger(__name__)


class RunContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: CIProvider = CIProvider.LOCAL
    read_only: bool = False
    registry: Optional[RegistryRef] = None
    reason: str = "local run"

    @classmethod
    def detect(cls, environ: Optional[Mapping[str, str]] = None, provider: str = "auto") -> 'RunContext':
        env = os.environ if environ is None else environ
        if provider == "auto":
            provider = _guess_provider(env)
        if provider == CIProvider.GITHUB.value:
            context = _github(env)
        elif provider == CIProvider.GITLAB.value:
            context = _gitlab(env)
        else:
            context = cls()
        logger.info(f"[CI] Run context: {context.provider.value} "
                    f"({'read-only' if context.read_only else 'publishing allowed'}: {context.reason})")
        return context


def _guess_provider(env: Mapping[str, str]) -> str:
    if env.get("GITHUB_ACTIONS"):
        return CIProvider.GITHUB.value
    if env.get("GITLAB_CI") or (env.get("CI") and env.get("CI_PROJECT_DIR")):
        return CIProvider.GITLAB.value
    return CIProvider.LOCAL.value


def _slug(ref: str) -> str:
    """Docker-safe tag from a ref name, as GitLab computes CI_COMMIT_REF_SLUG."""
    slug = re.sub(r"[^a-z0-9]", "-", ref.lower())[:63]
    return slug.strip("-") or constants.LATEST_TAG


def _tags(ref: str, on_default_branch: bool) -> Tuple[str, ...]:
    tags = [ref]
    if on_default_branch:
        tags.append(constants.LATEST_TAG)
    return tuple(dict.fromkeys(tags))


def _github(env: Mapping[str, str]) -> RunContext:
    event = env.get("GITHUB_EVENT_NAME", "")
    ref = env.get("GITHUB_REF_NAME", "")
    owner = env.get("GITHUB_REPOSITORY_OWNER", "")

    registry = None
    if owner and ref:
        registry = RegistryRef(
            url=f"{constants.GHCR_REGISTRY}/{owner.lower()}",
            tags=_tags(_slug(ref), ref == constants.DEFAULT_BRANCH),
        )

    if not env.get("GITHUB_TOKEN"):
        return RunContext(provider=CIProvider.GITHUB, read_only=True, registry=registry, reason="no token")
    if event in constants.READ_ONLY_GITHUB_EVENTS:
        return RunContext(provider=CIProvider.GITHUB, read_only=True, registry=registry, reason=f"event '{event}'")
    return RunContext(provider=CIProvider.GITHUB, registry=registry, reason=f"event '{event or 'unknown'}'")


def _gitlab(env: Mapping[str, str]) -> RunContext:
    source = env.get("CI_PIPELINE_SOURCE", "")
    ref_name = env.get("CI_COMMIT_REF_NAME", "")
    default_branch = env.get("CI_DEFAULT_BRANCH") or constants.DEFAULT_BRANCH

    registry = None
    if env.get("CI_REGISTRY") and env.get("CI_REGISTRY_IMAGE"):
        registry = RegistryRef(
            url=env["CI_REGISTRY_IMAGE"],
            tags=_tags(env.get("CI_COMMIT_REF_SLUG") or constants.LATEST_TAG, ref_name == default_branch),
        )

    if source in constants.READ_ONLY_GITLAB_SOURCES:
        return RunContext(provider=CIProvider.GITLAB, read_only=True, registry=registry, reason=f"pipeline source '{source}'")
    return RunContext(provider=CIProvider.GITLAB, registry=registry, reason=f"pipeline source '{source or 'unknown'}'")
