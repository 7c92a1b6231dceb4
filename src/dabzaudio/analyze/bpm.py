"""
BPM Detection using short-time energy autocorrelation, with aubio as an
optional realtime tempo-tracker route.

- Energy per frame (1024 samples, hop 512), smoothed over +/-5 frames
- Best autocorrelation lag within the 60-180 BPM window
- Octave correction folds the result into 70-180 BPM

References:
- https://github.com/aubio/aubio/issues/227
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

OCTAVE_RANGE = (70.0, 180.0)


def _normalize_bpm(bpm: float, target_range: Tuple[float, float] = OCTAVE_RANGE) -> float:
    """
    Fold BPM into a plausible range by halving or doubling.

    Detectors often lock onto half or double the perceived tempo.
    A tempo just under the lower bound (e.g. 65) is doubled, not kept.

    Args:
        bpm: Detected BPM value
        target_range: Preferred BPM range (min, max)

    Returns:
        BPM within target range
    """
    min_bpm, max_bpm = target_range

    # Keep doubling if too slow
    while bpm < min_bpm and bpm > 0:
        bpm *= 2

    # Keep halving if too fast
    while bpm > max_bpm:
        bpm /= 2

    return bpm


def _round_bpm(bpm: float) -> int:
    """Round half up to the nearest integer."""
    return int(math.floor(bpm + 0.5))


def frame_energies(samples: np.ndarray, frame_size: int = 1024, hop_size: int = 512) -> np.ndarray:
    """
    Short-time energy: sum of squared samples for each full frame.

    Frames that would run past the end of the buffer are dropped.
    """
    samples = np.asarray(samples, dtype=float)
    starts = range(0, len(samples) - frame_size + 1, hop_size)
    return np.array([float(np.sum(samples[s:s + frame_size] ** 2)) for s in starts])


def smooth_energy(energy: np.ndarray, radius: int = 5) -> np.ndarray:
    """
    Centered moving average over +/- radius frames.

    Windows are clamped at the sequence edges and averaged over the
    samples actually available.
    """
    energy = np.asarray(energy, dtype=float)
    n = len(energy)
    if n == 0 or radius <= 0:
        return energy.copy()

    cumulative = np.concatenate(([0.0], np.cumsum(energy)))
    index = np.arange(n)
    lo = np.maximum(0, index - radius)
    hi = np.minimum(n, index + radius + 1)
    return (cumulative[hi] - cumulative[lo]) / (hi - lo)


def lag_bounds(
    sample_rate: int,
    hop_size: int,
    min_bpm: float = 60.0,
    max_bpm: float = 180.0,
) -> Tuple[int, int]:
    """
    Convert a tempo window into an autocorrelation lag window (in hops).

    The fastest tempo gives the smallest lag.
    """
    frames_per_second = sample_rate / hop_size
    min_lag = max(1, int(round(60.0 / max_bpm * frames_per_second)))
    max_lag = max(min_lag, int(round(60.0 / min_bpm * frames_per_second)))
    return min_lag, max_lag


def autocorrelation_lag(energy: np.ndarray, min_lag: int, max_lag: int) -> int:
    """
    Lag in [min_lag, max_lag] with the largest unnormalized autocorrelation.

    Ties keep the lowest lag. Returns 0 when no lag scores above zero
    (silence, or a sequence shorter than min_lag).
    """
    energy = np.asarray(energy, dtype=float)
    best_lag = 0
    best_value = 0.0

    for lag in range(min_lag, min(max_lag, len(energy) - 1) + 1):
        value = float(np.dot(energy[:-lag], energy[lag:]))
        if value > best_value:
            best_value = value
            best_lag = lag

    return best_lag


def lag_to_bpm(lag: int, hop_size: int, sample_rate: int) -> float:
    """Beats per minute for a beat period of ``lag`` hops."""
    seconds_per_beat = (lag * hop_size) / sample_rate
    return 60.0 / seconds_per_beat


def estimate_bpm(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[int]:
    """
    Estimate tempo of a single-channel buffer by energy autocorrelation.

    Args:
        samples: 1-D float samples (never modified)
        sample_rate: Sample rate in Hz
        config: tempo config section (frame_size, hop_size, smoothing_radius,
                min_bpm, max_bpm)

    Returns:
        Integer BPM, or None when no periodicity is found
    """
    config = config or {}
    frame_size = config.get("frame_size", 1024)
    hop_size = config.get("hop_size", 512)
    radius = config.get("smoothing_radius", 5)

    energy = frame_energies(samples, frame_size, hop_size)
    if len(energy) == 0:
        logger.debug("Buffer shorter than one energy frame")
        return None

    smoothed = smooth_energy(energy, radius)
    min_lag, max_lag = lag_bounds(
        sample_rate,
        hop_size,
        config.get("min_bpm", 60.0),
        config.get("max_bpm", 180.0),
    )

    lag = autocorrelation_lag(smoothed, min_lag, max_lag)
    if lag == 0:
        logger.debug("No periodicity found in energy envelope")
        return None

    raw_bpm = lag_to_bpm(lag, hop_size, sample_rate)
    bpm = _round_bpm(_normalize_bpm(raw_bpm))
    logger.debug(f"Autocorrelation lag {lag} -> raw {raw_bpm:.1f} BPM -> {bpm}")
    return bpm


def _detect_bpm_aubio(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[int]:
    """
    Detect BPM by streaming fixed-size chunks through aubio's tempo tracker.

    Returns:
        Integer BPM or None if the tracker failed or found nothing
    """
    config = config or {}
    try:
        import aubio

        hop_size = config.get("aubio_hop_size", 512)
        buf_size = config.get("aubio_buf_size", 1024)

        tempo = aubio.tempo("default", buf_size, hop_size, int(sample_rate))
        chunks = np.ascontiguousarray(samples, dtype=np.float32)

        for start in range(0, len(chunks) - hop_size + 1, hop_size):
            tempo(chunks[start:start + hop_size])

        detected_bpm = float(tempo.get_bpm())
        logger.debug(f"Aubio raw BPM: {detected_bpm:.1f}, confidence: {tempo.get_confidence():.2f}")

        if detected_bpm > 0:
            return _round_bpm(_normalize_bpm(detected_bpm))
        return None

    except Exception as e:
        logger.warning(f"Aubio BPM detection failed: {e}")
        return None


def detect_bpm(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[int]:
    """
    Detect BPM with the configured method.

    Args:
        samples: 1-D float samples
        sample_rate: Sample rate in Hz
        config: tempo config section; method is "autocorrelation" (default)
                or "aubio"

    Returns:
        Integer BPM (70-180 after octave correction) or None
    """
    config = config or {}
    method = config.get("method", "autocorrelation")

    if method == "aubio":
        bpm = _detect_bpm_aubio(samples, sample_rate, config)
    else:
        bpm = estimate_bpm(samples, sample_rate, config)

    if bpm is None:
        logger.warning(f"No tempo detected (method: {method})")
    else:
        logger.info(f"✅ BPM detected: {bpm} (method: {method})")
    return bpm
