"""
Tests for ProcessorConfig normalization and Settings.
"""

import logging

import pytest

from streamframes.config.logging_setup import configure_logging
from streamframes.config.settings import Settings
from streamframes.core.extraction.models import (
    DEFAULT_PPS,
    DEFAULT_SPS,
    FrameMetadata,
    ProcessorConfig,
    round_up_to_multiple,
)


# ---------------------------------------------------------------------------
# ProcessorConfig
# ---------------------------------------------------------------------------

class TestResolution:
    """Dimensions are always multiples of 28."""

    def test_rounds_up_to_next_multiple(self):
        config = ProcessorConfig().with_resolution(100, 50)

        assert config.target_width == 112
        assert config.target_height == 56

    def test_exact_multiples_are_unchanged(self):
        config = ProcessorConfig().with_resolution(1120, 1120)

        assert (config.target_width, config.target_height) == (1120, 1120)

    def test_one_rounds_up_to_28(self):
        assert round_up_to_multiple(1) == 28

    def test_constructor_normalizes_too(self):
        config = ProcessorConfig(target_width=30, target_height=57)

        assert (config.target_width, config.target_height) == (56, 84)

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError, match="resolution"):
            ProcessorConfig().with_resolution(0, 100)


class TestQuality:
    """Quality is clamped to [1, 100]."""

    @pytest.mark.parametrize("given,expected", [(0, 1), (-5, 1), (150, 100), (90, 90), (1, 1), (100, 100)])
    def test_clamping(self, given, expected):
        assert ProcessorConfig().with_quality(given).quality == expected


class TestProcessorConfig:
    """General value-object behaviour."""

    def test_defaults(self):
        config = ProcessorConfig()

        assert config.frame_rate == 2
        assert (config.target_width, config.target_height) == (1120, 1120)
        assert config.quality == 90
        assert config.sps == DEFAULT_SPS
        assert config.pps == DEFAULT_PPS
        assert config.max_workers >= 1
        assert config.buffer_capacity == 100
        assert config.hardware_accel is False

    def test_with_methods_return_new_instances(self):
        original = ProcessorConfig()

        changed = original.with_frame_rate(5).with_quality(50).with_hardware_accel(True)

        assert original.frame_rate == 2
        assert original.quality == 90
        assert changed.frame_rate == 5
        assert changed.quality == 50
        assert changed.hardware_accel is True

    def test_is_frozen(self):
        config = ProcessorConfig()
        with pytest.raises(AttributeError):
            config.quality = 10

    def test_raw_parameter_sets_are_stored_as_base64(self):
        config = ProcessorConfig().with_parameter_sets(b"\x67\x42", b"\x68\xce")

        assert config.sps == "Z0I="
        assert config.pps == "aM4="

    @pytest.mark.parametrize("field,value", [
        ("frame_rate", 0),
        ("max_workers", 0),
        ("buffer_capacity", 0),
    ])
    def test_rejects_non_positive_counts(self, field, value):
        with pytest.raises(ValueError):
            ProcessorConfig(**{field: value})

    def test_worker_and_buffer_setters(self):
        config = ProcessorConfig().with_max_workers(3).with_buffer_capacity(7)

        assert config.max_workers == 3
        assert config.buffer_capacity == 7


class TestFrameMetadata:

    def test_valid_dimension(self):
        assert FrameMetadata(10, 2, 5.0, 1120, 1120).valid_dimension
        assert not FrameMetadata(10, 2, 5.0, 1920, 1080).valid_dimension


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:
    """Tests for environment-driven settings."""

    def test_processor_config_is_normalized(self):
        settings = Settings(_env_file=None, target_width=100, target_height=50, jpeg_quality=150)

        config = settings.processor_config()

        assert (config.target_width, config.target_height) == (112, 56)
        assert config.quality == 100

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("FRAME_RATE", "5")
        monkeypatch.setenv("HARDWARE_ACCEL", "true")

        settings = Settings(_env_file=None)

        assert settings.frame_rate == 5
        assert settings.processor_config().hardware_accel is True

    def test_missing_api_key_is_reported(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        settings = Settings(_env_file=None)

        assert "ANTHROPIC_API_KEY" in settings.validate_required_fields()

    def test_rejects_zero_frame_rate(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, frame_rate=0)


class TestConfigureLogging:

    def test_sets_package_level(self):
        configure_logging(Settings(_env_file=None, log_level="debug"))

        assert logging.getLogger("streamframes").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(Settings(_env_file=None, log_level="chatty"))

        assert logging.getLogger("streamframes").level == logging.INFO
