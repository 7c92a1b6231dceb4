"""
Key Detection using Krumhansl-Schmuckler profile correlation.

- Frames the sample buffer (4096/2048 by default), no zero-padding
- Per-frame chroma from an external extractor (librosa by default)
- Averaged chroma correlated against 24 rotated major/minor profiles
- Output: "<Pitch> major" / "<Pitch> minor" or "Unknown"
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np

from dabzaudio.analyze.chroma import CHROMA_BINS, ChromaExtractor, librosa_chroma, validate_chroma
from dabzaudio.analyze.progress import ProgressCallback, report
from dabzaudio.analyze.vectors import dot, normalize_vector, rotate_profile

logger = logging.getLogger(__name__)

UNKNOWN_KEY = "Unknown"

PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

MAJOR_PROFILE = (6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88)
MINOR_PROFILE = (6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17)

# Progress is reported every PROGRESS_EVERY hops
PROGRESS_EVERY = 50

# Mapping from standard key notation to Camelot notation
STANDARD_TO_CAMELOT_MAJOR = {
    "C": "8B",
    "C#": "3B",
    "D": "10B",
    "D#": "5B",
    "E": "12B",
    "F": "7B",
    "F#": "2B",
    "G": "9B",
    "G#": "4B",
    "A": "11B",
    "A#": "6B",
    "B": "1B",
}

STANDARD_TO_CAMELOT_MINOR = {
    "C": "5A",
    "C#": "12A",
    "D": "7A",
    "D#": "2A",
    "E": "9A",
    "F": "4A",
    "F#": "11A",
    "G": "6A",
    "G#": "1A",
    "A": "8A",
    "A#": "3A",
    "B": "10A",
}


class KeyCandidate(NamedTuple):
    """Correlation score of one (root, mode) pair."""

    root: int
    mode: str
    score: float

    @property
    def label(self) -> str:
        return f"{PITCH_NAMES[self.root]} {self.mode}"


def _suppress_noise(chroma: np.ndarray, noise_floor: float) -> np.ndarray:
    """Zero every bin below noise_floor * max bin."""
    if noise_floor <= 0:
        return chroma
    peak = float(chroma.max()) if chroma.size else 0.0
    if peak <= 0:
        return chroma
    cleaned = chroma.copy()
    cleaned[cleaned < noise_floor * peak] = 0.0
    return cleaned


def rank_keys(chroma, config: Optional[Dict[str, Any]] = None) -> List[KeyCandidate]:
    """
    Score all 24 keys against a chroma vector.

    Args:
        chroma: 12-bin pitch-class energy (any scale)
        config: key_detection config section (uses noise_floor)

    Returns:
        Candidates sorted by descending score. Equal scores keep the
        enumeration order (root ascending, major before minor).
    """
    config = config or {}
    noise_floor = config.get("noise_floor", 0.1)

    chroma = normalize_vector(chroma)
    if chroma.shape != (CHROMA_BINS,):
        raise ValueError(f"Chroma must have {CHROMA_BINS} bins, got shape {chroma.shape}")
    chroma = _suppress_noise(chroma, noise_floor)

    candidates = []
    for root in range(CHROMA_BINS):
        major = normalize_vector(rotate_profile(MAJOR_PROFILE, root))
        minor = normalize_vector(rotate_profile(MINOR_PROFILE, root))
        candidates.append(KeyCandidate(root, "major", dot(chroma, major)))
        candidates.append(KeyCandidate(root, "minor", dot(chroma, minor)))

    return sorted(candidates, key=lambda c: -c.score)


def estimate_key_from_chroma(chroma, config: Optional[Dict[str, Any]] = None) -> str:
    """
    Pick the best-fitting key label for an averaged chroma vector.

    Args:
        chroma: 12-bin averaged chroma
        config: key_detection config section with:
            - confidence_floor: best score below this yields "Unknown"
            - noise_floor: fraction of the max bin under which bins are zeroed
            - report_ambiguity: append the runner-up when it is close
            - ambiguity_ratio: runner-up must exceed this fraction of best

    Returns:
        Key label, optionally "<best> (possible: <second>)", or "Unknown"
    """
    config = config or {}
    confidence_floor = config.get("confidence_floor", 0.15)

    ranked = rank_keys(chroma, config)
    best, second = ranked[0], ranked[1]

    if best.score < confidence_floor:
        logger.debug(f"Best key score {best.score:.3f} below floor {confidence_floor}")
        return UNKNOWN_KEY

    if config.get("report_ambiguity", False):
        ratio = config.get("ambiguity_ratio", 0.9)
        if second.score > ratio * best.score:
            return f"{best.label} (possible: {second.label})"

    return best.label


def detect_key(
    samples: np.ndarray,
    sample_rate: int,
    config: Optional[Dict[str, Any]] = None,
    extractor: Optional[ChromaExtractor] = None,
    progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Detect the musical key of a single-channel sample buffer.

    Args:
        samples: 1-D float samples (never modified)
        sample_rate: Sample rate in Hz
        config: key_detection config section (frame_size, hop_size, ...)
        extractor: Chroma extractor, defaults to librosa
        progress: Optional status callback

    Returns:
        Key label or "Unknown"
    """
    config = config or {}
    extractor = extractor or librosa_chroma
    frame_size = config.get("frame_size", 4096)
    hop_size = config.get("hop_size", 2048)

    samples = np.asarray(samples)
    total = len(samples)
    chroma_sum = np.zeros(CHROMA_BINS)
    frames = 0
    discarded = 0

    for hop_index, start in enumerate(range(0, total - frame_size + 1, hop_size)):
        frame = samples[start:start + frame_size]
        chroma = validate_chroma(extractor(frame, frame_size, sample_rate))
        if chroma is None:
            discarded += 1
        else:
            chroma_sum += chroma
            frames += 1

        if hop_index % PROGRESS_EVERY == 0:
            report(progress, f"Chroma: {start / total * 100:.1f}%")

    if discarded:
        logger.debug(f"Discarded {discarded} frames with malformed chroma")

    if frames == 0:
        logger.warning("No valid chroma frames - key unknown")
        return UNKNOWN_KEY

    key = estimate_key_from_chroma(chroma_sum / frames, config)
    if key == UNKNOWN_KEY:
        logger.warning(f"Key correlation too weak over {frames} frames")
    else:
        logger.info(f"✅ Key detected: {key} ({frames} frames)")
    return key


def key_to_camelot(label: str) -> Optional[str]:
    """
    Convert a key label such as "A minor" to Camelot notation ("8A").

    Ambiguity suffixes are ignored; "Unknown" and unparsable labels give None.
    """
    parts = label.split(" (possible:")[0].split()
    if len(parts) != 2:
        return None
    note, mode = parts[0], parts[1].lower()
    if mode == "major":
        return STANDARD_TO_CAMELOT_MAJOR.get(note)
    if mode == "minor":
        return STANDARD_TO_CAMELOT_MINOR.get(note)
    return None
