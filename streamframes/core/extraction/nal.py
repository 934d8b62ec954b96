"""
H.264 parameter-set injection.

Live H.264 sources often send SPS/PPS once, at the start of the stream.
A decoder that joins later (or that is handed one chunk in isolation)
has no picture geometry and refuses to decode anything. Prepending a
known SPS/PPS pair to every segment fixes that.

Pure functions, no shared state.
"""

import base64
import binascii

from .errors import InvalidParameterSetError
from .models import ProcessorConfig

# Annex B start code
START_CODE = b"\x00\x00\x00\x01"


def decode_parameter_set(encoded: str, name: str = "parameter set") -> bytes:
    """Decode a base64 SPS/PPS, raising InvalidParameterSetError if malformed."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise InvalidParameterSetError(f"invalid {name}: {e}") from e


def inject_parameter_sets(data: bytes, sps: bytes, pps: bytes) -> bytes:
    """
    Prefix `data` with an SPS and a PPS NAL unit.

    Result is START_CODE + sps + START_CODE + pps + data.
    """
    return b"".join((START_CODE, sps, START_CODE, pps, data))


def repair_stream(data: bytes, config: ProcessorConfig) -> bytes:
    """Inject the config's SPS/PPS pair in front of a raw H.264 segment."""
    sps = decode_parameter_set(config.sps, "SPS")
    pps = decode_parameter_set(config.pps, "PPS")
    return inject_parameter_sets(data, sps, pps)
