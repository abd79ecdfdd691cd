"""Reader and writer for .rfx sound parameter files.

File layout (little-endian):

    offset  size  content
    0       4     signature b"rFX "
    4       2     version, uint16 (200)
    6       2     payload length, uint16 (96)
    8       96    wave parameters: 2 x int32 then 22 x float32, in field order
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

from .errors import InvalidParamsError, ParamsFileError, ParamsFormatError
from .params import PARAM_FIELDS, WaveParams, parse_params

_LOGGER = logging.getLogger("rfxsynth.rfx")

RFX_SIGNATURE = b"rFX "
RFX_VERSION = 200

_HEADER = struct.Struct("<4sHH")
_PAYLOAD = struct.Struct("<2i22f")

PAYLOAD_SIZE = _PAYLOAD.size
FILE_SIZE = _HEADER.size + _PAYLOAD.size


def encode_params(params: WaveParams) -> bytes:
    """Serialize params into a complete .rfx file image."""

    header = _HEADER.pack(RFX_SIGNATURE, RFX_VERSION, PAYLOAD_SIZE)
    payload = _PAYLOAD.pack(*(getattr(params, name) for name in PARAM_FIELDS))
    return header + payload


def decode_params(data: bytes, *, source: str = "<bytes>") -> WaveParams:
    """Parse a .rfx file image, raising ParamsFormatError when it is not valid."""

    if len(data) < _HEADER.size:
        _LOGGER.warning("[%s] rFX file does not seem to be valid", source)
        raise ParamsFormatError(f"{source}: file too short for an rFX header ({len(data)} bytes)")

    signature, version, length = _HEADER.unpack_from(data)
    if signature != RFX_SIGNATURE:
        _LOGGER.warning("[%s] rFX file does not seem to be valid", source)
        raise ParamsFormatError(f"{source}: bad signature {signature!r}")
    if version != RFX_VERSION:
        _LOGGER.warning("[%s] rFX file version not supported (%i)", source, version)
        raise ParamsFormatError(f"{source}: unsupported rFX version {version}")
    if length != PAYLOAD_SIZE:
        _LOGGER.warning("[%s] Wrong rFX wave parameters size", source)
        raise ParamsFormatError(
            f"{source}: wave parameters size is {length}, expected {PAYLOAD_SIZE}"
        )
    if len(data) < FILE_SIZE:
        _LOGGER.warning("[%s] Wrong rFX wave parameters size", source)
        raise ParamsFormatError(
            f"{source}: truncated wave parameters ({len(data) - _HEADER.size} of {PAYLOAD_SIZE} bytes)"
        )

    values = _PAYLOAD.unpack_from(data, _HEADER.size)
    try:
        return parse_params(dict(zip(PARAM_FIELDS, values)))
    except InvalidParamsError as exc:
        raise ParamsFormatError(f"{source}: unrepresentable wave parameters") from exc


def load_params(path: str | Path) -> WaveParams:
    """Load wave parameters from a .rfx file."""

    target = Path(path)
    try:
        data = target.read_bytes()
    except OSError as exc:
        _LOGGER.warning("[%s] rFX file could not be opened: %s", target, exc)
        raise ParamsFileError(f"{target}: {exc.strerror or exc}") from exc
    params = decode_params(data, source=str(target))
    _LOGGER.debug("Loaded wave params from %s", target)
    return params


def save_params(path: str | Path, params: WaveParams) -> Path:
    """Write wave parameters to a .rfx file."""

    target = Path(path)
    try:
        target.write_bytes(encode_params(params))
    except OSError as exc:
        _LOGGER.warning("[%s] rFX file could not be written: %s", target, exc)
        raise ParamsFileError(f"{target}: {exc.strerror or exc}") from exc
    return target
