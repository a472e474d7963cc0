import pytest

from containerbuilder.builder import Resolver
from containerbuilder.constants import TargetStatus
from containerbuilder.exceptions import InvalidTargetError, TargetNotFoundError, ResolutionError


class TestResolver:

    def test_duplicates_are_dropped_keeping_first_order(self, make_catalog, tmp_path):
        resolver = Resolver(make_catalog(), tmp_path / "out")
        assert resolver.names(["rocky9", "rocky8", "rocky9"]) == ["rocky9", "rocky8"]

    def test_empty_request_defaults_to_all(self, make_catalog, tmp_path):
        resolver = Resolver(make_catalog(), tmp_path / "out")
        assert resolver.names([]) == ["rocky8", "rocky9"]

    def test_group_alias_expands_in_place(self, make_catalog, tmp_path):
        catalog = make_catalog(names=("a", "b", "c"), groups={"pair": ["c", "a"]})
        resolver = Resolver(catalog, tmp_path / "out")
        assert resolver.names(["b", "pair", "a"]) == ["b", "c", "a"]
        assert resolver.names(["all", "b"]) == ["a", "b", "c"]

    def test_resolved_targets_carry_paths(self, make_catalog, tmp_path):
        catalog = make_catalog()
        targets = Resolver(catalog, tmp_path / "out").resolve(["rocky8"])
        assert len(targets) == 1
        target = targets[0]
        assert target.status == TargetStatus.PENDING
        assert target.definition == catalog.definitions_dir / "rocky8" / "skipper-rocky8.def"
        assert target.output == tmp_path / "out" / "hpc-spack-skipper-rocky8.sif"

    def test_unknown_name_is_rejected(self, make_catalog, tmp_path):
        resolver = Resolver(make_catalog(), tmp_path / "out")
        with pytest.raises(InvalidTargetError, match="bogus"):
            resolver.resolve(["rocky8", "bogus"])

    def test_unknown_name_is_a_resolution_error(self, make_catalog, tmp_path):
        with pytest.raises(ResolutionError):
            Resolver(make_catalog(), tmp_path / "out").resolve(["bogus"])

    def test_missing_definition_names_expected_path(self, make_catalog, tmp_path):
        catalog = make_catalog(missing=("rocky9",))
        expected = catalog.definitions_dir / "rocky9" / "skipper-rocky9.def"
        with pytest.raises(TargetNotFoundError) as excinfo:
            Resolver(catalog, tmp_path / "out").resolve(["all"])
        assert excinfo.value.path == expected
        assert str(expected) in str(excinfo.value)
