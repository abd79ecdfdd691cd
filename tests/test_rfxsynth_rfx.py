from __future__ import annotations

import logging
import struct
from pathlib import Path

import pytest

from rfxsynth import (
    ParamsFileError,
    ParamsFormatError,
    WaveParams,
    WaveType,
    decode_params,
    encode_params,
    generate,
    load_params,
    save_params,
)
from rfxsynth.params import PARAM_FIELDS
from rfxsynth.rfx import FILE_SIZE, PAYLOAD_SIZE

_LAYOUT = struct.Struct("<4sHH2i22f")


def _sample_params() -> WaveParams:
    return WaveParams(
        rand_seed=31337,
        wave_type=WaveType.NOISE,
        sustain_time=0.1,
        decay_time=0.2,
        sustain_punch=0.3,
        start_frequency=0.45,
        slide=0.1,
        vibrato_depth=0.2,
        vibrato_speed=0.3,
        phaser_offset=0.1,
        lpf_cutoff=0.7,
        lpf_resonance=0.2,
        hpf_cutoff=0.05,
    )


def _image(**header: object) -> bytes:
    fields: dict[str, object] = {"signature": b"rFX ", "version": 200, "length": 96}
    fields.update(header)
    values = [0, 1, 0.0, 0.1, 0.0, 0.1, 0.3] + [0.0] * 12 + [1.0] + [0.0] * 4
    return _LAYOUT.pack(fields["signature"], fields["version"], fields["length"], *values)


def test_encoded_file_is_104_bytes() -> None:
    data = encode_params(WaveParams())
    assert FILE_SIZE == 104
    assert PAYLOAD_SIZE == 96 == 4 * len(PARAM_FIELDS)
    assert len(data) == FILE_SIZE
    assert data[:8] == b"rFX " + struct.pack("<HH", 200, 96)


def test_decode_reads_documented_layout() -> None:
    params = decode_params(_image())
    assert params.wave is WaveType.SAWTOOTH
    assert params.sustain_time == pytest.approx(0.1)
    assert params.decay_time == pytest.approx(0.1)
    assert params.start_frequency == pytest.approx(0.3)
    assert params.lpf_cutoff == 1.0
    assert params.hpf_cutoff_sweep == 0.0


def test_file_round_trip_reproduces_render(tmp_path: Path) -> None:
    params = _sample_params()
    path = save_params(tmp_path / "blip.rfx", params)

    loaded = load_params(path)

    assert path.stat().st_size == FILE_SIZE
    assert loaded == params
    assert generate(loaded).data == generate(params).data


def test_trailing_bytes_are_ignored() -> None:
    params = _sample_params()
    assert decode_params(encode_params(params) + b"\x00extra") == params


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"rFX \xc8",
        _image(signature=b"RIFF"),
        _image(version=100),
        _image(length=95),
        _image()[:-4],
    ],
    ids=["empty", "short-header", "signature", "version", "length", "truncated"],
)
def test_malformed_images_are_rejected(data: bytes) -> None:
    with pytest.raises(ParamsFormatError):
        decode_params(data)


def test_non_finite_payload_is_rejected() -> None:
    data = bytearray(encode_params(WaveParams()))
    struct.pack_into("<f", data, 8 + 8 + 4 * 6, float("nan"))
    with pytest.raises(ParamsFormatError):
        decode_params(bytes(data))


def test_unsupported_version_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="rfxsynth.rfx"):
        with pytest.raises(ParamsFormatError, match="unsupported rFX version 100"):
            decode_params(_image(version=100), source="old.rfx")
    assert "version not supported (100)" in caplog.text


def test_missing_file_raises_file_error(tmp_path: Path) -> None:
    with pytest.raises(ParamsFileError) as info:
        load_params(tmp_path / "missing.rfx")
    assert not isinstance(info.value, ParamsFormatError)


def test_load_reports_path_for_bad_contents(tmp_path: Path) -> None:
    path = tmp_path / "junk.rfx"
    path.write_bytes(b"not a parameter file at all")
    with pytest.raises(ParamsFormatError, match="junk.rfx"):
        load_params(path)
