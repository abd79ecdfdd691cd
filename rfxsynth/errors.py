from __future__ import annotations


class RfxSynthError(Exception):
    """Base error for the rfxsynth library."""


class InvalidParamsError(RfxSynthError):
    """Raised when wave parameters cannot be parsed or validated."""


class ParamsFileError(RfxSynthError):
    """Raised when a parameter file cannot be read."""


class ParamsFormatError(ParamsFileError):
    """Raised when a parameter file is not a valid .rfx file."""
