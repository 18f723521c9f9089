"""
Tests for layered settings: defaults, YAML file, environment.
"""

import logging

import pytest

from covariant.config import Settings, env_overrides, read_config_file
from covariant.geometry import Quality, StlFormat, ThreadMode


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in an empty directory so no stray covariant.yaml is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDefaults:

    def test_values(self):
        settings = Settings()
        assert settings.quality == Quality.standard()
        assert settings.stl_format == StlFormat.BINARY
        assert settings.boolean_engine == "manifold"
        assert settings.log_level == "WARNING"
        assert settings.thread_mode == ThreadMode.NONE
        assert settings.log_level_number == logging.WARNING

    def test_export_options(self):
        options = Settings(quality=Quality.fine(), stl_format=StlFormat.ASCII).export_options()
        assert options.tolerance == 0.01
        assert options.format == StlFormat.ASCII

    def test_load_without_file_or_env(self, workdir):
        assert Settings.load(environ={}) == Settings()


class TestMerge:

    def test_strings_are_parsed(self):
        settings = Settings().merged({
            "quality": "draft",
            "stl_format": "ASCII",
            "log_level": "debug",
            "thread_mode": "cosmetic",
        })
        assert settings.quality == Quality.draft()
        assert settings.stl_format == StlFormat.ASCII
        assert settings.log_level == "DEBUG"
        assert settings.thread_mode == ThreadMode.COSMETIC

    def test_numeric_quality(self):
        assert Settings().merged({"quality": 0.3}).quality.tolerance == 0.3

    def test_original_unchanged(self):
        base = Settings()
        base.merged({"quality": "fine"})
        assert base.quality == Quality.standard()

    @pytest.mark.parametrize("raw", [
        {"quality": "coarse"},
        {"stl_format": "obj"},
        {"log_level": "LOUD"},
        {"thread_mode": "partial"},
        {"boolean_engine": "  "},
        {"colour": "red"},
    ])
    def test_invalid_values(self, raw):
        with pytest.raises(ValueError):
            Settings().merged(raw)


class TestSources:

    def test_yaml_file(self, workdir):
        path = workdir / "custom.yaml"
        path.write_text("quality: fine\nstl_format: ascii\n")
        settings = Settings.load(path, environ={})
        assert settings.quality == Quality.fine()
        assert settings.stl_format == StlFormat.ASCII

    def test_default_file_in_working_directory(self, workdir):
        (workdir / "covariant.yaml").write_text("boolean_engine: blender\n")
        assert Settings.load(environ={}).boolean_engine == "blender"

    def test_empty_file(self, workdir):
        path = workdir / "empty.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_non_mapping_file(self, workdir):
        path = workdir / "list.yaml"
        path.write_text("- fine\n- ascii\n")
        with pytest.raises(ValueError):
            read_config_file(path)

    def test_missing_explicit_file(self, workdir):
        with pytest.raises(OSError):
            Settings.load(workdir / "nope.yaml", environ={})

    def test_environment_beats_file(self, workdir):
        path = workdir / "c.yaml"
        path.write_text("quality: fine\nlog_level: INFO\n")
        settings = Settings.load(path, environ={"COVARIANT_QUALITY": "draft"})
        assert settings.quality == Quality.draft()
        assert settings.log_level == "INFO"

    def test_blank_environment_ignored(self):
        assert env_overrides({"COVARIANT_QUALITY": "  ", "OTHER": "x"}) == {}

    def test_from_env(self):
        settings = Settings.from_env({"COVARIANT_THREAD_MODE": "full"})
        assert settings.thread_mode == ThreadMode.FULL
