from enum import Enum

# --- Log and Debug ---
# Short aliases for module names to keep CLI/env concise
LOG_ALIAS_MAP = {
    "sched": "containerbuilder.builder.scheduler",
    "scheduler": "containerbuilder.builder.scheduler",
    "sm": "containerbuilder.builder.machine",
    "machine": "containerbuilder.builder.machine",
    "res": "containerbuilder.builder.resolve",
    "resolve": "containerbuilder.builder.resolve",
    "gate": "containerbuilder.builder.gate",
    "agg": "containerbuilder.builder.aggregate",
    "bld": "containerbuilder.builder.build",
    "build": "containerbuilder.builder.build",
    "be": "containerbuilder.backends",
    "app": "containerbuilder.backends.apptainer",
    "reg": "containerbuilder.backends.registry",
    "conf": "containerbuilder.config",
    "ci": "containerbuilder.ci",
}

# Top-level modules within containerbuilder for auto-prefixing
KNOWN_TOP_MODULES = {
    "builder",
    "backends",
    "datacls",
    "utils",
    "config",
    "ci",
    "cli",
}

LOG_LEVELS_ENV = "CBUILD_LOG_LEVELS"

# --- Target catalog defaults ---
DEFAULT_PREFIX = "hpc-spack-skipper"
DEFAULT_DEFINITIONS_DIR = "containers"
DEFAULT_DEFINITION_PATTERN = "{target}/skipper-{target}.def"
DEFAULT_ARTIFACT_PATTERN = "{prefix}-{target}.sif"
DEFAULT_IMAGE_PATTERN = "hpc-spack-{target}"
DEFAULT_TARGETS = ("rocky8", "rocky9")
GROUP_ALL = "all"
TARGET_PLACEHOLDER = "{target}"

# --- Build defaults ---
DEFAULT_PARALLEL = 1
DEFAULT_CACHE_DIR = "~/.apptainer/cache"
DEFAULT_TMPDIR = "/tmp"
WORKER_THREAD_PREFIX = "cbuild-worker"
TMP_SUBDIR_PREFIX = "cbuild-"
INSPECT_HEAD_LINES = 20

# --- Backend tools, in detection order ---
APPTAINER_TOOLS = ("apptainer", "singularity")
CACHE_ENV_VARS = ("APPTAINER_CACHEDIR", "SINGULARITY_CACHEDIR")

# --- Registry ---
LATEST_TAG = "latest"
GHCR_REGISTRY = "ghcr.io"
DEFAULT_BRANCH = "main"
READ_ONLY_GITHUB_EVENTS = {"pull_request", "pull_request_target"}
READ_ONLY_GITLAB_SOURCES = {"merge_request_event", "external_pull_request_event"}

# --- Exit codes ---
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


class TargetStatus(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    TESTING = "testing"
    PUSHING = "pushing"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({TargetStatus.DONE, TargetStatus.FAILED, TargetStatus.SKIPPED})

# Allowed forward moves of the per-target lifecycle.
# PENDING -> FAILED only happens when a stop signal arrives before the first stage.
TRANSITIONS = {
    TargetStatus.PENDING: frozenset({TargetStatus.BUILDING, TargetStatus.SKIPPED, TargetStatus.FAILED}),
    TargetStatus.BUILDING: frozenset({TargetStatus.TESTING, TargetStatus.PUSHING, TargetStatus.DONE, TargetStatus.FAILED}),
    TargetStatus.TESTING: frozenset({TargetStatus.PUSHING, TargetStatus.DONE, TargetStatus.FAILED}),
    TargetStatus.PUSHING: frozenset({TargetStatus.DONE, TargetStatus.FAILED}),
    TargetStatus.DONE: frozenset(),
    TargetStatus.FAILED: frozenset(),
    TargetStatus.SKIPPED: frozenset(),
}


class GateDecision(str, Enum):
    BUILD = "build"
    SKIP = "skip"


class PrivilegeMode(str, Enum):
    ELEVATED = "elevated"
    UNPRIVILEGED = "unprivileged"


class Stage(str, Enum):
    BUILD = "build"
    TEST = "test"
    PUSH = "push"


class CIProvider(str, Enum):
    LOCAL = "local"
    GITHUB = "github"
    GITLAB = "gitlab"
