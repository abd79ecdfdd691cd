"""
Sound effect synthesis engine.

Every output sample first advances the slow-moving state (repeat, arpeggio,
frequency slide, vibrato, square duty, envelope, phaser tap, high-pass
sweep), then runs eight supersampled oscillator steps through the low-pass
filter, high-pass filter and phaser. The sub-samples are averaged, scaled by
0.2 and clamped to [-1, 1].

Generation stops when the envelope runs out, when the frequency slide hits
the floor set by a nonzero minimum frequency, or after ten seconds of audio.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from .audio import SAMPLE_RATE, Wave
from .params import ParamsInput, WaveParams, WaveType, coerce_params

_LOGGER = logging.getLogger("rfxsynth.engine")

MAX_WAVE_LENGTH_SECONDS = 10
MAX_SAMPLES = MAX_WAVE_LENGTH_SECONDS * SAMPLE_RATE
SUPERSAMPLING = 8
SAMPLE_SCALE = 0.2
MIN_PERIOD = 8
ENVELOPE_STAGES = 3
PHASER_BUFFER_SIZE = 1024
NOISE_BUFFER_SIZE = 32

_PHASER_MASK = PHASER_BUFFER_SIZE - 1
_NOISE_STEPS = 10_000
_SEED_MASK = 0xFFFF_FFFF


@dataclass(slots=True)
class _Oscillation:
    """Frequency, duty and arpeggio state; rebuilt from params on every repeat."""

    period: float
    max_period: float
    slide: float
    delta_slide: float
    square_duty: float
    square_slide: float
    arpeggio_modulation: float
    arpeggio_time: int
    arpeggio_limit: int


def _speed_limit(speed: float) -> int:
    """Samples between arpeggio or repeat events for a 0..1 speed."""
    # Complement in single precision, as stored in the parameter file.
    remaining = float(np.float32(1.0) - np.float32(speed))
    return int(remaining**2 * 20000 + 32)


def _reset_oscillation(params: WaveParams) -> _Oscillation:
    if params.change_amount >= 0.0:
        arpeggio_modulation = 1.0 - params.change_amount**2 * 0.9
    else:
        arpeggio_modulation = 1.0 + params.change_amount**2 * 10.0

    arpeggio_limit = _speed_limit(params.change_speed)
    # Exact comparison: only a change speed of exactly 1.0 disables the arpeggio.
    if params.change_speed == 1.0:
        arpeggio_limit = 0

    return _Oscillation(
        period=100.0 / (params.start_frequency**2 + 0.001),
        max_period=100.0 / (params.min_frequency**2 + 0.001),
        slide=1.0 - params.slide**3 * 0.01,
        delta_slide=-(params.delta_slide**3) * 0.000001,
        square_duty=0.5 - params.square_duty * 0.5,
        square_slide=-params.duty_sweep * 0.00005,
        arpeggio_modulation=arpeggio_modulation,
        arpeggio_time=0,
        arpeggio_limit=arpeggio_limit,
    )


def _repeat_limit(params: WaveParams) -> int:
    # Exact comparison: a repeat speed of exactly 0.0 disables repeating.
    if params.repeat_speed == 0.0:
        return 0
    return _speed_limit(params.repeat_speed)


def _stage_length(time: float) -> int:
    length = np.float32(time) * np.float32(time) * np.float32(100000.0)
    return int(length)


def _signed_square(value: float, scale: float) -> float:
    squared = value**2 * scale
    return -squared if value < 0.0 else squared


def _period_samples(period: float) -> int:
    if not math.isfinite(period) or period < MIN_PERIOD:
        return MIN_PERIOD
    return int(period)


def _slide_duty(duty: float, slide: float) -> float:
    return min(max(duty + slide, 0.0), 0.5)


def _phaser_tap(offset: float) -> int:
    return min(abs(int(offset)), _PHASER_MASK)


def _sweep_hp_cutoff(cutoff: float, sweep: float) -> float:
    return min(max(cutoff * sweep, 0.00001), 0.1)


def _wrap_phase(phase: int, period: int) -> int:
    # Keeps the carry past the boundary; no reset to zero.
    return phase % period


def _envelope_volume(stage: int, time: int, length: int, punch: float) -> float:
    match stage:
        case 0:
            return time / length
        case 1:
            return 1.0 + (1.0 - time / length) * 2.0 * punch
        case _:
            return 1.0 - time / length


def make_rng(seed: int) -> np.random.Generator:
    """Return a call-scoped generator: seeded when nonzero, OS entropy otherwise."""
    if seed != 0:
        return np.random.default_rng(seed & _SEED_MASK)
    return np.random.default_rng()


def fill_noise(noise: list[float], rng: np.random.Generator) -> None:
    """Refill the noise table in place with values quantized to 1/10000 steps in [-1, 1]."""
    draws = rng.integers(0, _NOISE_STEPS, size=len(noise), endpoint=True)
    noise[:] = (draws / _NOISE_STEPS * 2.0 - 1.0).tolist()


def oscillator_sample(
    wave_type: int,
    phase: int,
    period: int,
    square_duty: float,
    noise: list[float],
) -> float:
    """Raw oscillator value for an integer phase inside a period of samples."""
    fp = phase / period
    match wave_type:
        case WaveType.SQUARE:
            return 0.5 if fp < square_duty else -0.5
        case WaveType.SAWTOOTH:
            return 1.0 - fp * 2.0
        case WaveType.SINE:
            return math.sin(fp * 2.0 * math.pi)
        case WaveType.NOISE:
            return noise[phase * NOISE_BUFFER_SIZE // period]
        case _:
            return 0.0


def generate(params: ParamsInput, *, rng: np.random.Generator | None = None) -> Wave:
    """Render a sound effect from its parameters.

    The caller's record is left untouched; the clamped copy used for the
    render is returned as ``Wave.params``. Pass ``rng`` to control the noise
    source explicitly, otherwise one is derived from ``rand_seed``.
    """

    source = coerce_params(params).normalized()
    if rng is None:
        rng = make_rng(source.rand_seed)

    wave_type = source.wave_type
    osc = _reset_oscillation(source)

    # Low-pass filter
    lp_position = 0.0
    lp_velocity = 0.0
    lp_bandwidth = source.lpf_cutoff**3 * 0.1
    lp_sweep = 1.0 + source.lpf_cutoff_sweep * 0.0001
    lp_damping = 5.0 / (1.0 + source.lpf_resonance**2 * 20.0) * (0.01 + lp_bandwidth)
    lp_damping = min(lp_damping, 0.8)
    lp_active = source.lpf_cutoff != 1.0

    # High-pass filter
    hp_position = 0.0
    hp_cutoff = source.hpf_cutoff**2 * 0.1
    hp_sweep = 1.0 + source.hpf_cutoff_sweep * 0.0003

    vibrato_phase = 0.0
    vibrato_speed = source.vibrato_speed**2 * 0.01
    vibrato_amplitude = source.vibrato_depth * 0.5

    envelope_length = (
        _stage_length(source.attack_time),
        _stage_length(source.sustain_time),
        _stage_length(source.decay_time),
    )
    envelope_stage = 0
    envelope_time = 0

    phaser_offset = _signed_square(source.phaser_offset, 1020.0)
    phaser_sweep = _signed_square(source.phaser_sweep, 1.0)
    phaser_buffer = [0.0] * PHASER_BUFFER_SIZE
    phaser_index = 0

    noise_buffer = [0.0] * NOISE_BUFFER_SIZE
    fill_noise(noise_buffer, rng)

    repeat_time = 0
    repeat_limit = _repeat_limit(source)

    buffer = np.zeros(MAX_SAMPLES, dtype=np.float32)
    sample_count = MAX_SAMPLES
    stop_reason = "capacity"
    phase = 0

    for index in range(MAX_SAMPLES):
        repeat_time += 1
        if repeat_limit != 0 and repeat_time >= repeat_limit:
            repeat_time = 0
            osc = _reset_oscillation(source)

        osc.arpeggio_time += 1
        if osc.arpeggio_limit != 0 and osc.arpeggio_time >= osc.arpeggio_limit:
            osc.arpeggio_limit = 0
            osc.period *= osc.arpeggio_modulation

        osc.slide += osc.delta_slide
        osc.period *= osc.slide
        floor_reached = False
        if osc.period > osc.max_period:
            osc.period = osc.max_period
            floor_reached = source.min_frequency > 0.0

        effective_period = osc.period
        if vibrato_amplitude > 0.0:
            vibrato_phase += vibrato_speed
            effective_period = osc.period * (1.0 + math.sin(vibrato_phase) * vibrato_amplitude)
        period = _period_samples(effective_period)

        osc.square_duty = _slide_duty(osc.square_duty, osc.square_slide)

        envelope_time += 1
        if envelope_time > envelope_length[envelope_stage]:
            envelope_time = 0
            envelope_stage += 1
            while envelope_stage < ENVELOPE_STAGES and envelope_length[envelope_stage] == 0:
                envelope_stage += 1
            if envelope_stage == ENVELOPE_STAGES:
                sample_count = index
                stop_reason = "envelope"
                break
        envelope_volume = _envelope_volume(
            envelope_stage,
            envelope_time,
            envelope_length[envelope_stage],
            source.sustain_punch,
        )

        phaser_offset += phaser_sweep
        phaser_tap = _phaser_tap(phaser_offset)

        if hp_sweep != 0.0:
            hp_cutoff = _sweep_hp_cutoff(hp_cutoff, hp_sweep)

        total = 0.0
        for _ in range(SUPERSAMPLING):
            phase += 1
            if phase >= period:
                phase = _wrap_phase(phase, period)
                if wave_type == WaveType.NOISE:
                    fill_noise(noise_buffer, rng)

            sample = oscillator_sample(wave_type, phase, period, osc.square_duty, noise_buffer)

            previous = lp_position
            lp_bandwidth = min(max(lp_bandwidth * lp_sweep, 0.0), 0.1)
            if lp_active:
                lp_velocity += (sample - lp_position) * lp_bandwidth
                lp_velocity -= lp_velocity * lp_damping
            else:
                lp_position = sample
                lp_velocity = 0.0
            lp_position += lp_velocity

            hp_position += lp_position - previous
            hp_position -= hp_position * hp_cutoff

            phaser_buffer[phaser_index & _PHASER_MASK] = hp_position
            tapped = phaser_buffer[(phaser_index - phaser_tap + PHASER_BUFFER_SIZE) & _PHASER_MASK]
            phaser_index = (phaser_index + 1) & _PHASER_MASK

            total += (hp_position + tapped) * envelope_volume

        value = total / SUPERSAMPLING * SAMPLE_SCALE
        if math.isnan(value):
            # Diverging filter state overflowed.
            value = 0.0
        buffer[index] = min(max(value, -1.0), 1.0)

        if floor_reached:
            sample_count = index + 1
            stop_reason = "frequency floor"
            break

    _LOGGER.debug(
        "Generated %d samples (%.3fs), stopped by %s",
        sample_count,
        sample_count / SAMPLE_RATE,
        stop_reason,
    )
    return Wave(samples=buffer[:sample_count].copy(), params=source)
