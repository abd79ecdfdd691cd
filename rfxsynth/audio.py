from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Callable, cast

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import DTypeLike, NDArray
from pydantic import BaseModel, ConfigDict, model_validator

from .errors import RfxSynthError
from .params import WaveParams

FloatArray = NDArray[np.float32]
AudioNumbers = NDArray[np.floating[Any]] | Sequence[float] | FloatArray

SAMPLE_RATE = 44_100
BITS_PER_SAMPLE = 32
CHANNELS = 1


def ensure_audio_contract(audio: AudioNumbers) -> FloatArray:
    """Normalize dtype/range/shape to the mono float32 [-1, 1] contract."""

    mono: FloatArray = np.asarray(audio, dtype=np.float32).reshape(-1)
    if mono.size == 0:
        return mono
    return np.clip(mono, -1.0, 1.0)


class Wave(BaseModel):
    """Generated wave: float32 mono samples plus their format metadata."""

    samples: FloatArray
    params: WaveParams
    sample_rate: int = SAMPLE_RATE
    bits_per_sample: int = BITS_PER_SAMPLE
    channels: int = CHANNELS

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @model_validator(mode="after")
    def _normalize(self) -> "Wave":
        object.__setattr__(self, "samples", ensure_audio_contract(self.samples))
        return self

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)

    @property
    def duration(self) -> float:
        return self.sample_count / self.sample_rate if self.sample_rate > 0 else 0.0

    @property
    def data(self) -> bytes:
        """Raw little-endian IEEE float32 sample bytes."""
        return self.samples.astype("<f4", copy=False).tobytes()

    def to_numpy(self) -> FloatArray:
        return self.samples

    def __array__(self, dtype: DTypeLike | None = None, copy: bool | None = None) -> NDArray[np.generic]:
        return np.asarray(self.samples, dtype=dtype)

    def __len__(self) -> int:
        return self.sample_count

    def save(self, path: str | Path) -> Path:
        return write_wav(path, self.samples, sample_rate=self.sample_rate)


def _looks_like_samples(sequence: Sequence[object]) -> bool:
    match sequence:
        case []:
            return True
        case [int() | float() | np.floating(), *_]:
            return True
        case _:
            return False


def write_wav(
    path: str | Path,
    audio: Wave | AudioNumbers,
    *,
    sample_rate: int = SAMPLE_RATE,
) -> Path:
    """Write mono 32-bit float samples to a wav file."""

    target = Path(path)
    match audio:
        case Wave():
            samples = audio.samples
            sample_rate = audio.sample_rate
        case np.ndarray():
            samples = ensure_audio_contract(audio)
        case str() | bytes():
            raise RfxSynthError("audio must be a Wave or a sequence of samples")
        case Sequence() as sequence if _looks_like_samples(sequence):
            samples = ensure_audio_contract(sequence)
        case _:
            raise RfxSynthError("audio must be a Wave or a sequence of samples")

    write_fn = getattr(sf, "write", None)
    assert callable(write_fn)
    write_audio = cast(Callable[..., None], write_fn)
    # soundfile stubs are incomplete; cast is intentional for type safety.
    write_audio(target, samples, sample_rate, subtype="FLOAT")  # type: ignore[reportUnknownMemberType]
    return target
