"""
Audio decoding: encoded payloads and files to float sample channels.

Decoding is delegated to librosa (soundfile backend). Audio is kept at its
native sample rate and channel layout; channel selection happens in the
pipeline.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

import librosa
import numpy as np

logger = logging.getLogger(__name__)

AudioSource = Union[bytes, bytearray, str, Path, BinaryIO]


class DecodeError(Exception):
    """Raised when an audio payload cannot be decoded."""
    pass


@dataclass(frozen=True)
class DecodedAudio:
    """Decoded audio: one row per channel, plus the sample rate in Hz."""

    channels: np.ndarray
    sample_rate: int

    @classmethod
    def from_array(cls, samples: np.ndarray, sample_rate: int) -> "DecodedAudio":
        """
        Wrap an already-decoded buffer.

        Args:
            samples: 1-D mono buffer or 2-D (channels, samples) array
            sample_rate: Positive sample rate in Hz

        Raises:
            ValueError: On a non-positive sample rate or >2-D input
        """
        if sample_rate is None or int(sample_rate) <= 0:
            raise ValueError(f"Sample rate must be a positive integer, got {sample_rate!r}")

        data = np.asarray(samples, dtype=np.float32)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        elif data.ndim != 2:
            raise ValueError(f"Expected 1-D or 2-D samples, got {data.ndim}-D")

        return cls(channels=data, sample_rate=int(sample_rate))

    @property
    def num_channels(self) -> int:
        return int(self.channels.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.channels.shape[1] / self.sample_rate

    def channel(self, index: int = 0) -> Optional[np.ndarray]:
        """Samples of one channel, or None if missing or empty."""
        if index >= self.num_channels:
            return None
        data = self.channels[index]
        if data.size == 0:
            return None
        return data


def decode_audio(source: AudioSource) -> DecodedAudio:
    """
    Decode an encoded audio payload or file.

    Args:
        source: Raw encoded bytes, a file path, or a binary file object

    Returns:
        DecodedAudio at the file's native sample rate

    Raises:
        DecodeError: If the payload cannot be decoded
    """
    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise DecodeError("Empty audio payload")
        target = io.BytesIO(bytes(source))
        name = f"<{len(source)} bytes>"
    elif isinstance(source, (str, Path)):
        target = str(source)
        name = Path(source).name
    else:
        target = source
        name = getattr(source, "name", "<stream>")

    try:
        samples, sample_rate = librosa.load(target, sr=None, mono=False)
    except Exception as e:
        raise DecodeError(f"Could not decode {name}: {e}") from e

    decoded = DecodedAudio.from_array(samples, sample_rate)
    logger.debug(
        f"Decoded {name}: {decoded.num_channels} channel(s), "
        f"{decoded.sample_rate} Hz, {decoded.duration_seconds:.1f}s"
    )
    return decoded
