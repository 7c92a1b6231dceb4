"""
Analysis pipeline: decode, select channel 0, run key and tempo estimation.

The two estimators are independent; a failure in one only resets its own
field of the result. analyze_audio() always returns an AnalysisResult.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from dabzaudio.analyze.bpm import detect_bpm
from dabzaudio.analyze.chroma import ChromaExtractor
from dabzaudio.analyze.decode import AudioSource, DecodedAudio, DecodeError, decode_audio
from dabzaudio.analyze.key import UNKNOWN_KEY, detect_key
from dabzaudio.analyze.progress import ProgressCallback, report
from dabzaudio.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Tempo and key of one audio input."""

    bpm: Optional[int] = None
    key: str = UNKNOWN_KEY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _resolve_config(config: Union[Config, Dict[str, Any], None]) -> Dict[str, Any]:
    if config is None:
        return Config.defaults().data
    if isinstance(config, Config):
        return config.data
    return config


def _to_decoded(
    source: Union[AudioSource, DecodedAudio, np.ndarray, Sequence[float]],
    sample_rate: Optional[int],
) -> DecodedAudio:
    if isinstance(source, DecodedAudio):
        return source
    if isinstance(source, (np.ndarray, list, tuple)):
        return DecodedAudio.from_array(source, sample_rate)
    if sample_rate is not None:
        logger.warning(f"Ignoring sample_rate={sample_rate}: encoded input uses its own rate")
    return decode_audio(source)


def analyze_audio(
    source: Union[AudioSource, DecodedAudio, np.ndarray, Sequence[float]],
    sample_rate: Optional[int] = None,
    config: Union[Config, Dict[str, Any], None] = None,
    progress: Optional[ProgressCallback] = None,
    extractor: Optional[ChromaExtractor] = None,
) -> AnalysisResult:
    """
    Estimate BPM and key of an audio input.

    Args:
        source: Encoded bytes, file path, binary file object, DecodedAudio,
                or a decoded buffer: numpy array, list or tuple of samples
                (mono or (channels, samples))
        sample_rate: Required for decoded buffers; ignored for encoded input
        config: Config instance or its data dict; defaults when None
        progress: Optional status callback
        extractor: Chroma extractor override (defaults to librosa)

    Returns:
        AnalysisResult; fields fall back to None / "Unknown" on failure
    """
    config_data = _resolve_config(config)

    report(progress, "Decoding audio...")
    try:
        decoded = _to_decoded(source, sample_rate)
    except (DecodeError, ValueError) as e:
        logger.error(f"Audio decoding failed: {e}")
        return AnalysisResult()

    samples = decoded.channel(0)
    if samples is None:
        logger.warning("No channel data available")
        return AnalysisResult()

    report(progress, "Extracting chroma features...")
    try:
        key = detect_key(
            samples,
            decoded.sample_rate,
            config_data.get("key_detection", {}),
            extractor=extractor,
            progress=progress,
        )
    except Exception as e:
        logger.warning(f"Key estimation failed: {e}", exc_info=True)
        key = UNKNOWN_KEY

    report(progress, "Estimating BPM...")
    try:
        bpm = detect_bpm(samples, decoded.sample_rate, config_data.get("tempo", {}))
    except Exception as e:
        logger.warning(f"Tempo estimation failed: {e}", exc_info=True)
        bpm = None

    report(progress, "Done")
    return AnalysisResult(bpm=bpm, key=key)
