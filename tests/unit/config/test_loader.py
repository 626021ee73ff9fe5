"""Tests for config loader module."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from sagewrap.config.builder import ConfigError
from sagewrap.config.env import EnvReader
from sagewrap.config.loader import (
    DEFAULT_CONFIG_FILE,
    get_config,
    get_default_config_path,
    load_config_file,
    validate_config,
)
from sagewrap.config.models import (
    EncoderConfig,
    RateControlConfig,
    TriggerConfig,
    WrapperConfig,
)
from sagewrap.executor import build_command
from sagewrap.request import Mode, extract_parameters


class TestGetDefaultConfigPath:
    """Tests for get_default_config_path function."""

    def test_returns_default_when_env_not_set(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SAGEWRAP_CONFIG_PATH", raising=False)
        assert get_default_config_path() == DEFAULT_CONFIG_FILE

    def test_returns_env_path_when_set(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAGEWRAP_CONFIG_PATH", "/custom/sagewrap.toml")
        assert get_default_config_path() == Path("/custom/sagewrap.toml")


class TestLoadConfigFile:
    """Tests for load_config_file function."""

    def test_returns_empty_dict_when_file_not_exists(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "nonexistent.toml") == {}

    def test_loads_valid_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "sagewrap.toml"
        config_file.write_text('[encoder]\nvideo_codec = "h264_qsv"\n')
        result = load_config_file(config_file)
        assert result["encoder"]["video_codec"] == "h264_qsv"

    def test_invalid_toml_is_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A broken file never stops the wrapper."""
        config_file = tmp_path / "sagewrap.toml"
        config_file.write_text("[encoder\nvideo_codec = ")
        with caplog.at_level(logging.WARNING):
            result = load_config_file(config_file)
        assert result == {}
        assert "Ignoring config file" in caplog.text

    def test_reloads_after_modification(self, tmp_path: Path) -> None:
        config_file = tmp_path / "sagewrap.toml"
        config_file.write_text('[demux]\noutput_format = "mpegts"\n')
        assert load_config_file(config_file)["demux"]["output_format"] == "mpegts"

        config_file.write_text('[demux]\noutput_format = "matroska"\n')
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))
        assert load_config_file(config_file)["demux"]["output_format"] == "matroska"


class TestGetConfig:
    """Tests for get_config function."""

    def test_file_then_env(self, tmp_path: Path) -> None:
        config_file = tmp_path / "sagewrap.toml"
        config_file.write_text(
            '[encoder]\nvideo_codec = "h264_qsv"\npreset_value = "slow"\n'
        )
        reader = EnvReader(env={"SAGEWRAP_VIDEO_PRESET_VALUE": "veryfast"})
        config = get_config(config_file, env_reader=reader)
        assert config.encoder.video_codec == "h264_qsv"
        assert config.encoder.preset_value == "veryfast"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = get_config(tmp_path / "none.toml", env_reader=EnvReader(env={}))
        assert config == WrapperConfig()

    def test_quoted_booleans_in_file(self, tmp_path: Path) -> None:
        """Quoted "no"/"false" switch features off instead of on."""
        config_file = tmp_path / "sagewrap.toml"
        config_file.write_text(
            '[audio]\nreencode = "no"\n\n[logging]\nenabled = "false"\n'
        )
        config = get_config(config_file, env_reader=EnvReader(env={}))
        assert config.audio.reencode is False
        assert config.logging.enabled is False

        params = extract_parameters(["-vcodec", "mpeg4", "-i", "foo.ts"])
        command = build_command(Mode.TRANSCODE, params, config, "sage1_00000000")
        assert command.option("-c:a") == "copy"

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"SAGEWRAP_LOG_FORMAT": "yaml"})
        with pytest.raises(ConfigError):
            get_config(tmp_path / "none.toml", env_reader=reader)


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_defaults_are_clean(self) -> None:
        assert validate_config(WrapperConfig()) == []

    def test_copy_trigger_without_vcodec_trigger(self) -> None:
        config = WrapperConfig(triggers=TriggerConfig(vcodec=""))
        warnings = validate_config(config)
        assert any("vcodec trigger is empty" in w for w in warnings)

    def test_template_without_placeholders(self) -> None:
        config = WrapperConfig(
            encoder=EncoderConfig(deint_scale_filter_template="scale_qsv=w=1280")
        )
        assert any("placeholders" in w for w in validate_config(config))

    def test_non_numeric_clamp(self) -> None:
        config = WrapperConfig(rate_control=RateControlConfig(gop_clamp_max="auto"))
        assert any("not numeric" in w for w in validate_config(config))

    def test_non_positive_multiplier(self) -> None:
        config = WrapperConfig(
            rate_control=RateControlConfig(bufsize_multiplier=0.0)
        )
        assert any("bufsize_multiplier" in w for w in validate_config(config))

    def test_half_preset_pair(self) -> None:
        config = WrapperConfig(encoder=EncoderConfig(preset_value=""))
        assert any("preset" in w for w in validate_config(config))
