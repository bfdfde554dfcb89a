"""Test config resolution and validation with Pydantic."""

import pytest
from pydantic import ValidationError

from imfx.schemas import CLIConfig, InternalConfig, ParamConfig
from imfx.schemas.resolve import deep_merge, resolve_config

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        """Resolving with no CLI overrides uses all ParamConfig defaults."""
        config = resolve_config(ParamConfig(), None)

        assert isinstance(config, InternalConfig)
        assert config.engine.binary is None
        assert config.engine.quiet is True
        assert config.staging.tmp_dir is None
        assert config.staging.cache_format == "mpc"
        assert config.logging.level == "WARNING"
        assert config.logging.log_file is None

    def test_resolve_config_without_arguments(self):
        assert resolve_config() == resolve_config(ParamConfig(), CLIConfig())

    def test_cli_overrides_param(self):
        param = ParamConfig()
        param.logging.level = "INFO"
        config = resolve_config(param, CLIConfig(log_level="ERROR"))

        assert config.logging.level == "ERROR"

    def test_param_survives_unrelated_cli_override(self):
        param = ParamConfig()
        param.staging.cache_format = "miff"
        config = resolve_config(param, CLIConfig(tmpdir="/scratch"))

        assert config.staging.cache_format == "miff"
        assert config.staging.tmp_dir == "/scratch"

    def test_dict_inputs_are_validated(self):
        config = resolve_config(
            {"staging": {"cache_format": "MIFF"}},
            {"engine": "/usr/bin/convert"},
        )
        assert config.staging.cache_format == "miff"
        assert config.engine.binary == "/usr/bin/convert"

    def test_empty_cli_dict_means_no_overrides(self):
        assert resolve_config(ParamConfig(), {}) == resolve_config(ParamConfig(), None)


class TestInternalConfigImmutability:

    def test_internal_config_is_frozen(self, internal_config):
        with pytest.raises(ValidationError):
            internal_config.staging = None

    def test_nested_values_reject_bad_assignment(self, param_config):
        with pytest.raises(ValidationError):
            param_config.staging.cache_format = "png"


class TestParamConfigValidation:

    def test_unknown_cache_format_rejected(self):
        with pytest.raises(ValidationError):
            ParamConfig(staging={"cache_format": "tiff"})

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            ParamConfig(engine={"binary": None, "threads": 4})


class TestDeepMerge:

    def test_nested_merge(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"d": 4, "e": 5}, "f": 6}
        assert deep_merge(base, override) == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}

    def test_base_is_not_mutated(self):
        base = {"b": {"c": 2}}
        deep_merge(base, {"b": {"c": 3}})
        assert base == {"b": {"c": 2}}

    def test_later_overrides_win(self):
        assert deep_merge({"a": 1}, {"a": 2}, {"a": 3}) == {"a": 3}
