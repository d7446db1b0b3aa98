"""Tests for environment-driven configuration."""

import pytest

from mkatools.config import ToolConfig, load_config
from mkatools.errors import ValidationError


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(env={})
        assert config == ToolConfig()
        assert config.relay_buffer_size == 1024 * 1024
        assert config.opus_bitrate == 128
        assert config.cover_attachment_name == "Cover"
        assert config.cover_mime_type == "image/jpeg"

    def test_environment_overrides(self):
        config = load_config(env={
            "MKATOOLS_FLAC": "/opt/flac/bin/flac",
            "MKATOOLS_RELAY_BUFFER_SIZE": "65536",
            "MKATOOLS_OPUS_BITRATE": "96",
        })
        assert config.flac == "/opt/flac/bin/flac"
        assert config.relay_buffer_size == 65536
        assert config.opus_bitrate == 96

    def test_keyword_overrides_win_and_none_is_ignored(self):
        config = load_config(env={"MKATOOLS_OPUS_BITRATE": "96"}, opus_bitrate=160, relay_buffer_size=None)
        assert config.opus_bitrate == 160
        assert config.relay_buffer_size == 1024 * 1024

    @pytest.mark.parametrize("raw", ["abc", "0", "-5"])
    def test_rejects_bad_integers(self, raw):
        with pytest.raises(ValidationError):
            load_config(env={"MKATOOLS_RELAY_BUFFER_SIZE": raw})

    def test_rejects_non_positive_override(self):
        with pytest.raises(ValidationError):
            load_config(env={}, relay_buffer_size=0)
