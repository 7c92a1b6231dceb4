"""
Chroma extraction boundary.

Feature extraction itself is delegated to librosa. Anything an extractor
returns goes through validate_chroma() before the key estimator sees it, so
a malformed result becomes a discarded frame rather than a failure further
down the pipeline.
"""

import logging
from typing import Any, Optional, Protocol

import librosa
import numpy as np

logger = logging.getLogger(__name__)

CHROMA_BINS = 12


class ChromaExtractor(Protocol):
    """Callable returning a 12-bin pitch-class energy vector for one frame."""

    def __call__(self, frame: np.ndarray, buffer_size: int, sample_rate: int) -> Any:
        ...


def librosa_chroma(frame: np.ndarray, buffer_size: int, sample_rate: int) -> np.ndarray:
    """
    Extract the chroma vector of a single frame with librosa.

    The frame is analysed as exactly one STFT window (no centering/padding)
    and tuning estimation is disabled so the result is deterministic.

    Args:
        frame: Samples of one frame (len == buffer_size)
        buffer_size: FFT size, equal to the frame length
        sample_rate: Sample rate in Hz

    Returns:
        Array of shape (12,)
    """
    chroma = librosa.feature.chroma_stft(
        y=np.asarray(frame, dtype=np.float32),
        sr=sample_rate,
        n_fft=buffer_size,
        hop_length=buffer_size,
        center=False,
        tuning=0.0,
    )
    return chroma.mean(axis=1)


def validate_chroma(raw: Any) -> Optional[np.ndarray]:
    """
    Coerce an extractor result into a 12-element float vector.

    Args:
        raw: Whatever the extractor returned

    Returns:
        Float array of shape (12,), or None if the value does not conform
    """
    if raw is None:
        return None

    try:
        values = np.asarray(raw, dtype=float)
    except (TypeError, ValueError):
        return None

    if values.shape != (CHROMA_BINS,):
        return None
    if not np.all(np.isfinite(values)):
        return None
    # Chroma is an energy: negative bins mean the extractor misbehaved
    if np.any(values < 0):
        return None

    return values
