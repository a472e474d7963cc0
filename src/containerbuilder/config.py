import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator, ConfigDict

from . import constants
from .exceptions import (
    ConfigFileMissingError,
    ConfigParsingError,
    ConfigValidationError,
    InvalidTargetError,
)

logger = logging.getLogger(__name__)


class CatalogModel(BaseModel):
    """
        Class Config-Validation Model describing the buildable targets

        Paths are rendered from patterns with `{target}` and `{prefix}` fields.
        Group aliases are expanded here and nowhere else.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    prefix: str = constants.DEFAULT_PREFIX
    definitions_dir: Path = Path(constants.DEFAULT_DEFINITIONS_DIR)
    definition_pattern: str = constants.DEFAULT_DEFINITION_PATTERN
    artifact_pattern: str = constants.DEFAULT_ARTIFACT_PATTERN
    image_pattern: str = constants.DEFAULT_IMAGE_PATTERN
    targets: List[str] = Field(default_factory=lambda: list(constants.DEFAULT_TARGETS))
    groups: Dict[str, List[str]] = Field(default_factory=dict)
    smoke: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_patterns(self) -> 'CatalogModel':
        """Every per-target path must be unique, so patterns need the target field"""
        for key in ('definition_pattern', 'artifact_pattern', 'image_pattern'):
            if constants.TARGET_PLACEHOLDER not in getattr(self, key):
                raise ConfigValidationError(f"'{key}' must contain '{constants.TARGET_PLACEHOLDER}'.")
        return self

    @model_validator(mode='after')
    def check_targets_and_groups(self) -> 'CatalogModel':
        """Check target names are unique and groups only reference known targets"""
        if not self.targets:
            raise ConfigValidationError("At least one target must be defined.")
        seen = set()
        for name in self.targets:
            if not name or name != name.strip() or '/' in name:
                raise ConfigValidationError(f"Invalid target name: '{name}'.")
            if name in seen:
                raise ConfigValidationError(f"Target '{name}' is defined more than once.")
            seen.add(name)

        for group, members in self.groups.items():
            if group in seen:
                raise ConfigValidationError(f"Group '{group}' has the same name as a target.")
            unknown = [m for m in members if m not in seen]
            if unknown:
                raise ConfigValidationError(f"Group '{group}' references undefined targets: {unknown}.")
        return self

    @property
    def all_groups(self) -> Dict[str, List[str]]:
        """Groups with the `all` alias always present"""
        groups = {constants.GROUP_ALL: list(self.targets)}
        groups.update(self.groups)
        return groups

    def is_group(self, name: str) -> bool:
        return name in self.all_groups

    def expand(self, name: str) -> List[str]:
        """Expands a requested name into concrete target names."""
        if name in self.targets:
            return [name]
        groups = self.all_groups
        if name in groups:
            return list(groups[name])
        raise InvalidTargetError(
            f"Unknown target '{name}'. Valid names: {', '.join(self.targets + list(groups))}."
        )

    def _render(self, pattern: str, target: str) -> str:
        return pattern.format(target=target, prefix=self.prefix)

    def definition_path(self, target: str) -> Path:
        return self.definitions_dir / self._render(self.definition_pattern, target)

    def artifact_path(self, target: str, output_dir: Path) -> Path:
        return output_dir / self._render(self.artifact_pattern, target)

    def image_name(self, target: str) -> str:
        return self._render(self.image_pattern, target)


class Config:
    """
    Loads and validates the target catalog. Without a file the built-in
    defaults are used. It is the sole gatekeeper for configuration.
    """
    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.path = config_path
        raw_data = self._load_raw_config() if config_path else {}
        if config_path:
            self._anchor_definitions(raw_data)
        if overrides:
            raw_data.update({k: v for k, v in overrides.items() if v is not None})

        logger.debug("Validating target catalog with Pydantic...")
        try:
            self.model = CatalogModel.model_validate(raw_data)
            logger.debug(f"Target catalog validated successfully: \n{self.model.model_dump_json(indent=2)}")
        except ValidationError as e:
            raise ConfigValidationError(f"Configuration validation failed:\n{e}")

    def _load_raw_config(self) -> Dict[str, Any]:
        logger.info(f"Loading target catalog from '{self.path}'...")
        try:
            content = Path(self.path).read_text()
            config_data = yaml.safe_load(content)
            if config_data is None:
                return {}
            if not isinstance(config_data, dict):
                raise ConfigParsingError("Configuration file must be a YAML document containing a dictionary.")
            logger.debug(f"Successfully parsed YAML from '{self.path}'.")
            return config_data
        except FileNotFoundError:
            raise ConfigFileMissingError(f"Configuration file not found at: {self.path}")
        except yaml.YAMLError as e:
            raise ConfigParsingError(f"Error parsing YAML file: {e}")

    def _anchor_definitions(self, raw_data: Dict[str, Any]):
        """Relative definition directories in a catalog file are relative to that file."""
        definitions_dir = raw_data.get('definitions_dir')
        if isinstance(definitions_dir, str) and not Path(definitions_dir).is_absolute():
            raw_data['definitions_dir'] = str(Path(self.path).parent / definitions_dir)

    @property
    def catalog(self) -> CatalogModel:
        return self.model

    @property
    def prefix(self) -> str:
        return self.model.prefix

    @property
    def targets(self) -> List[str]:
        return list(self.model.targets)

    @property
    def groups(self) -> Dict[str, List[str]]:
        return self.model.all_groups

    @property
    def smoke(self) -> List[str]:
        return list(self.model.smoke)
