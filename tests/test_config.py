"""
Tests for run configuration: validation, YAML config files and flag layering.
"""

from pathlib import Path

import pytest

from ftl2gotpl.config import (
    DEFAULT_GLOB,
    DEFAULT_OUTPUT_EXT,
    RunConfig,
    build_config,
    load_config_file,
)
from ftl2gotpl.errors import ConfigError, ConverterUserError
from tests.infrastructure.file_utils import write


class TestRunConfigValidate:

    def test_defaults(self):
        cfg = RunConfig()
        assert cfg.glob == DEFAULT_GLOB == "**/*.ftl"
        assert cfg.ext == DEFAULT_OUTPUT_EXT == ".gotmpl"
        assert cfg.strict is False

    def test_missing_input(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="--in is required"):
            RunConfig(output_dir=tmp_path).validate()

    def test_missing_output(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="--out is required"):
            RunConfig(input_dir=tmp_path).validate()

    def test_ext_without_dot(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="--ext must start with '.', got 'gotmpl'"):
            RunConfig(input_dir=tmp_path, output_dir=tmp_path / "out", ext="gotmpl").validate()

    def test_blank_values_fall_back_to_defaults(self, tmp_path: Path):
        cfg = RunConfig(input_dir=tmp_path, output_dir=tmp_path / "out", glob=" ", ext="").validate()
        assert cfg.glob == DEFAULT_GLOB
        assert cfg.ext == DEFAULT_OUTPUT_EXT

    def test_input_must_exist(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="is not accessible"):
            RunConfig(input_dir=tmp_path / "nope", output_dir=tmp_path / "out").validate()

    def test_input_must_be_directory(self, tmp_path: Path):
        f = write(tmp_path / "file.ftl", "x")
        with pytest.raises(ConfigError, match="must be a directory"):
            RunConfig(input_dir=f, output_dir=tmp_path / "out").validate()

    def test_config_error_is_user_error(self):
        assert issubclass(ConfigError, ConverterUserError)
        assert issubclass(ConfigError, ValueError)


class TestConfigFile:

    def test_load_resolves_relative_paths(self, tmp_path: Path):
        path = write(tmp_path / "conf" / "ftl2gotpl.yaml", (
            "in: templates\n"
            "out: /abs/out\n"
            "glob: '**/*.ftlh'\n"
            "strict: true\n"
            "report_json: reports/run.json\n"
        ))

        data = load_config_file(path)

        assert data["input_dir"] == tmp_path / "conf" / "templates"
        assert data["output_dir"] == Path("/abs/out")
        assert data["glob"] == "**/*.ftlh"
        assert data["strict"] is True
        assert data["report_json"] == tmp_path / "conf" / "reports" / "run.json"

    def test_empty_file(self, tmp_path: Path):
        assert load_config_file(write(tmp_path / "c.yaml", "")) == {}

    def test_unknown_keys(self, tmp_path: Path):
        path = write(tmp_path / "c.yaml", "in: a\ncolour: red\n")
        with pytest.raises(ConfigError, match="unknown config keys: colour"):
            load_config_file(path)

    def test_non_mapping(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config_file(write(tmp_path / "c.yaml", "- a\n- b\n"))

    def test_invalid_yaml(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config_file(write(tmp_path / "c.yaml", "in: [unclosed\n"))

    def test_wrong_types(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="'strict' must be a boolean"):
            load_config_file(write(tmp_path / "c.yaml", "strict: 'yes'\n"))
        with pytest.raises(ConfigError, match="'glob' must be a string"):
            load_config_file(write(tmp_path / "c.yaml", "glob: 5\n"))

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="cannot read config file"):
            load_config_file(tmp_path / "absent.yaml")


class TestBuildConfig:

    def test_flags_override_file(self, tmp_path: Path):
        path = write(tmp_path / "c.yaml", "in: from_file\next: .tmpl\nstrict: true\n")

        cfg = build_config(path, input_dir=Path("from_flag"), ext=None, strict=None)

        assert cfg.input_dir == Path("from_flag")
        assert cfg.ext == ".tmpl"
        assert cfg.strict is True

    def test_no_file(self):
        cfg = build_config(None, glob="*.ftl", report_csv=None)
        assert cfg.glob == "*.ftl"
        assert cfg.report_csv is None
