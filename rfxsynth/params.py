"""Wave parameter record consumed by the synthesis engine.

Fields are declared in the order of the .rfx binary layout. Float fields are
held at float32 precision so that a record built in memory and the same
record read back from a parameter file compare equal.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from enum import IntEnum
from types import MappingProxyType
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import InvalidParamsError

_LOGGER = logging.getLogger("rfxsynth.params")

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_FLOAT32_MAX = float(np.finfo(np.float32).max)


class WaveType(IntEnum):
    SQUARE = 0
    SAWTOOTH = 1
    SINE = 2
    NOISE = 3


WAVE_TYPES: Mapping[str, WaveType] = MappingProxyType(
    {wave_type.name.lower(): wave_type for wave_type in WaveType}
)


def wave_type_from_name(name: str) -> WaveType:
    try:
        return WAVE_TYPES[name.strip().lower()]
    except KeyError as exc:
        raise InvalidParamsError(
            f"Unknown wave type: {name!r}. Valid: {list(WAVE_TYPES.keys())}"
        ) from exc


class WaveParams(BaseModel):
    """Synthesis parameters, mostly normalized to 0..1."""

    rand_seed: int = 0
    wave_type: int = WaveType.SQUARE.value

    # Envelope
    attack_time: float = 0.0
    sustain_time: float = 0.3
    sustain_punch: float = 0.0
    decay_time: float = 0.4

    # Frequency
    start_frequency: float = 0.3
    min_frequency: float = 0.0
    slide: float = 0.0
    delta_slide: float = 0.0
    vibrato_depth: float = 0.0
    vibrato_speed: float = 0.0

    # Tone change
    change_amount: float = 0.0
    change_speed: float = 0.0

    # Square wave
    square_duty: float = 0.0
    duty_sweep: float = 0.0

    # Repeat
    repeat_speed: float = 0.0

    # Phaser
    phaser_offset: float = 0.0
    phaser_sweep: float = 0.0

    # Filters
    lpf_cutoff: float = 1.0
    lpf_cutoff_sweep: float = 0.0
    lpf_resonance: float = 0.0
    hpf_cutoff: float = 0.0
    hpf_cutoff_sweep: float = 0.0

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        allow_inf_nan=False,
        validate_default=True,
    )

    @field_validator("rand_seed", "wave_type", mode="after")
    @classmethod
    def _check_int32(cls, value: int) -> int:
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise ValueError("value does not fit in a 32-bit signed integer")
        return int(value)

    @field_validator(
        "attack_time",
        "sustain_time",
        "sustain_punch",
        "decay_time",
        "start_frequency",
        "min_frequency",
        "slide",
        "delta_slide",
        "vibrato_depth",
        "vibrato_speed",
        "change_amount",
        "change_speed",
        "square_duty",
        "duty_sweep",
        "repeat_speed",
        "phaser_offset",
        "phaser_sweep",
        "lpf_cutoff",
        "lpf_cutoff_sweep",
        "lpf_resonance",
        "hpf_cutoff",
        "hpf_cutoff_sweep",
        mode="after",
    )
    @classmethod
    def _narrow_to_float32(cls, value: float) -> float:
        if not math.isfinite(value) or abs(value) > _FLOAT32_MAX:
            raise ValueError("value does not fit in a 32-bit float")
        return float(np.float32(value))

    @property
    def wave(self) -> WaveType | None:
        """The wave type as an enum, or None for codes outside the known set."""
        try:
            return WaveType(self.wave_type)
        except ValueError:
            return None

    def normalized(self) -> "WaveParams":
        """Return a copy with the pre-generation clamps applied.

        The minimum frequency may not exceed the start frequency and the slide
        may not be smaller than the delta slide.
        """
        updates: dict[str, float] = {}
        if self.min_frequency > self.start_frequency:
            updates["min_frequency"] = self.start_frequency
        if self.slide < self.delta_slide:
            updates["slide"] = self.delta_slide
        if not updates:
            return self
        _LOGGER.debug("Clamped wave params before generation: %s", updates)
        return self.model_copy(update=updates)


PARAM_FIELDS: tuple[str, ...] = tuple(WaveParams.model_fields)

ParamsInput = WaveParams | Mapping[str, Any]


def parse_params(payload: Mapping[str, Any]) -> WaveParams:
    """Parse a strict params payload, raising InvalidParamsError on failure."""

    try:
        return WaveParams.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse wave params: %s", exc)
        raise InvalidParamsError(str(exc)) from exc


def coerce_params(params: ParamsInput) -> WaveParams:
    match params:
        case WaveParams():
            return params
        case Mapping():
            return parse_params(params)
        case _:
            raise InvalidParamsError(f"Unsupported params type: {type(params).__name__}")


def update_params(base: WaveParams, changes: Mapping[str, Any]) -> WaveParams:
    """Apply field changes to a record, validating the result."""

    merged = base.model_dump()
    merged.update(changes)
    return parse_params(merged)
