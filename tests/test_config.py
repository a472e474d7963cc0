import pytest
import yaml
from pathlib import Path

from containerbuilder.config import Config
from containerbuilder.exceptions import (
    ConfigFileMissingError,
    ConfigParsingError,
    ConfigValidationError,
    InvalidTargetError,
)

BASE_CONFIG = {
    'prefix': 'lab',
    'definitions_dir': 'defs',
    'definition_pattern': '{target}.def',
    'artifact_pattern': '{prefix}-{target}.sif',
    'image_pattern': 'lab-{target}',
    'targets': ['alma9', 'rocky9', 'ubuntu24'],
    'groups': {'el': ['alma9', 'rocky9']},
    'smoke': ['spack --version'],
}


@pytest.fixture
def create_config_file(tmp_path: Path):
    """A pytest fixture to create a temporary catalog file."""
    def _create_file(config_data: dict) -> Path:
        config_file = tmp_path / "targets.yml"
        with open(config_file, 'w') as f:
            yaml.dump(config_data, f)
        return config_file
    return _create_file


class TestConfigLoading:

    def test_defaults_without_file(self):
        config = Config()
        assert config.prefix == 'hpc-spack-skipper'
        assert config.targets == ['rocky8', 'rocky9']
        assert config.groups == {'all': ['rocky8', 'rocky9']}
        assert config.catalog.definition_path('rocky8') == Path('containers/rocky8/skipper-rocky8.def')
        assert config.catalog.artifact_path('rocky8', Path('out')) == Path('out/hpc-spack-skipper-rocky8.sif')
        assert config.catalog.image_name('rocky9') == 'hpc-spack-rocky9'

    def test_load_valid_config(self, create_config_file, tmp_path):
        config = Config(str(create_config_file(BASE_CONFIG)))
        assert config.targets == ['alma9', 'rocky9', 'ubuntu24']
        assert config.groups['el'] == ['alma9', 'rocky9']
        assert config.groups['all'] == ['alma9', 'rocky9', 'ubuntu24']
        assert config.smoke == ['spack --version']
        assert config.catalog.definition_path('alma9') == tmp_path / 'defs' / 'alma9.def'

    def test_overrides_win_over_file(self, create_config_file):
        config = Config(str(create_config_file(BASE_CONFIG)), overrides={'prefix': 'ci', 'definitions_dir': None})
        assert config.prefix == 'ci'
        assert config.catalog.artifact_path('alma9', Path('o')) == Path('o/ci-alma9.sif')

    def test_file_not_found_raises_error(self):
        with pytest.raises(ConfigFileMissingError):
            Config("non_existent_file.yml")

    def test_invalid_yaml_raises_error(self, tmp_path):
        config_file = tmp_path / "invalid.yml"
        config_file.write_text("key: value: another")
        with pytest.raises(ConfigParsingError, match="Error parsing YAML file"):
            Config(str(config_file))

    def test_non_mapping_raises_error(self, tmp_path):
        config_file = tmp_path / "list.yml"
        config_file.write_text("- rocky8\n- rocky9\n")
        with pytest.raises(ConfigParsingError):
            Config(str(config_file))

    def test_unknown_key_raises_error(self, create_config_file):
        with pytest.raises(ConfigValidationError, match="extra"):
            Config(str(create_config_file({**BASE_CONFIG, 'paralel': 2})))


class TestCatalogValidation:

    @pytest.mark.parametrize("key", ['definition_pattern', 'artifact_pattern', 'image_pattern'])
    def test_patterns_need_target_field(self, create_config_file, key):
        with pytest.raises(ConfigValidationError, match=key):
            Config(str(create_config_file({**BASE_CONFIG, key: 'fixed-name'})))

    def test_duplicate_target_raises_error(self, create_config_file):
        with pytest.raises(ConfigValidationError, match="more than once"):
            Config(str(create_config_file({**BASE_CONFIG, 'targets': ['alma9', 'alma9']})))

    def test_group_with_unknown_member_raises_error(self, create_config_file):
        data = {**BASE_CONFIG, 'groups': {'el': ['alma9', 'centos7']}}
        with pytest.raises(ConfigValidationError, match="centos7"):
            Config(str(create_config_file(data)))

    def test_group_named_like_target_raises_error(self, create_config_file):
        data = {**BASE_CONFIG, 'groups': {'rocky9': ['alma9']}}
        with pytest.raises(ConfigValidationError, match="same name"):
            Config(str(create_config_file(data)))

    def test_expand_unknown_name(self):
        with pytest.raises(InvalidTargetError):
            Config().catalog.expand('bogus')
