"""
Tests for SPS/PPS injection.
"""

import base64

import pytest

from streamframes.core.extraction.errors import InvalidParameterSetError
from streamframes.core.extraction.models import DEFAULT_PPS, DEFAULT_SPS, ProcessorConfig
from streamframes.core.extraction.nal import (
    START_CODE,
    decode_parameter_set,
    inject_parameter_sets,
    repair_stream,
)


class TestInjectParameterSets:
    """Tests for the raw prefixing operation."""

    def test_output_layout(self):
        """Result is start code, SPS, start code, PPS, then the input."""
        sps = b"\x67\x42\xc0\x0c"
        pps = b"\x68\xce\x3c\x80"
        data = b"\x00\x00\x00\x01\x65\x88\x84"

        out = inject_parameter_sets(data, sps, pps)

        assert out == START_CODE + sps + START_CODE + pps + data

    def test_output_length(self):
        """Length is 8 + len(SPS) + len(PPS) + len(input)."""
        sps, pps, data = b"a" * 10, b"b" * 4, b"c" * 1000

        out = inject_parameter_sets(data, sps, pps)

        assert len(out) == 8 + len(sps) + len(pps) + len(data)

    def test_empty_input_still_gets_parameter_sets(self):
        out = inject_parameter_sets(b"", b"S", b"P")
        assert out == START_CODE + b"S" + START_CODE + b"P"

    def test_input_is_not_modified(self):
        data = bytearray(b"payload")
        inject_parameter_sets(bytes(data), b"S", b"P")
        assert data == bytearray(b"payload")


class TestDecodeParameterSet:
    """Tests for decoding stored SPS/PPS."""

    def test_default_sps_is_an_sps_nal(self):
        """The default SPS decodes and carries NAL type 7."""
        sps = decode_parameter_set(DEFAULT_SPS)
        assert sps[0] & 0x1F == 7

    def test_default_pps_is_a_pps_nal(self):
        pps = decode_parameter_set(DEFAULT_PPS)
        assert pps[0] & 0x1F == 8

    def test_rejects_malformed_base64(self):
        with pytest.raises(InvalidParameterSetError, match="SPS"):
            decode_parameter_set("not base64!!", "SPS")


class TestRepairStream:
    """Tests for repairing a segment from a config."""

    def test_uses_configured_pair(self):
        config = ProcessorConfig().with_parameter_sets(b"\x67\x01", b"\x68\x02")

        out = repair_stream(b"DATA", config)

        assert out == START_CODE + b"\x67\x01" + START_CODE + b"\x68\x02" + b"DATA"

    def test_invalid_pps_raises(self):
        config = ProcessorConfig().with_parameter_sets(DEFAULT_SPS, "@@@")

        with pytest.raises(InvalidParameterSetError, match="PPS"):
            repair_stream(b"DATA", config)

    def test_base64_text_and_bytes_are_equivalent(self):
        raw = b"\x67\x42\x00\x1e"
        from_bytes = ProcessorConfig().with_parameter_sets(raw, raw)
        from_text = ProcessorConfig().with_parameter_sets(
            base64.b64encode(raw).decode(), base64.b64encode(raw).decode()
        )

        assert repair_stream(b"x", from_bytes) == repair_stream(b"x", from_text)
