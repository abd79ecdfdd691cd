from __future__ import annotations

from .audio import SAMPLE_RATE, Wave, write_wav
from .engine import MAX_SAMPLES, generate
from .errors import InvalidParamsError, ParamsFileError, ParamsFormatError, RfxSynthError
from .logging_utils import configure_logging as _configure_logging
from .params import WaveParams, WaveType
from .rfx import decode_params, encode_params, load_params, save_params

__all__ = [
    "SAMPLE_RATE",
    "MAX_SAMPLES",
    "InvalidParamsError",
    "ParamsFileError",
    "ParamsFormatError",
    "RfxSynthError",
    "Wave",
    "WaveParams",
    "WaveType",
    "decode_params",
    "encode_params",
    "generate",
    "load_params",
    "save_params",
    "write_wav",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
