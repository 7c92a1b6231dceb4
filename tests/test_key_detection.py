"""
Unit tests for Krumhansl-Schmuckler key detection.

Tests profile scoring, ambiguity reporting, frame handling with an injected
chroma extractor, and an end-to-end run on synthetic tones through librosa.
"""

import numpy as np
import pytest
from unittest.mock import Mock

from dabzaudio.analyze.chroma import librosa_chroma, validate_chroma
from dabzaudio.analyze.key import (
    MAJOR_PROFILE,
    MINOR_PROFILE,
    UNKNOWN_KEY,
    detect_key,
    estimate_key_from_chroma,
    key_to_camelot,
    rank_keys,
)
from dabzaudio.analyze.vectors import rotate_profile


@pytest.fixture
def key_config():
    """Default key_detection section."""
    return {
        "frame_size": 4096,
        "hop_size": 2048,
        "confidence_floor": 0.15,
        "noise_floor": 0.1,
        "ambiguity_ratio": 0.9,
        "report_ambiguity": False,
    }


def _triad_chroma(*pitch_classes):
    chroma = np.zeros(12)
    for pc in pitch_classes:
        chroma[pc] += 1.0
    return chroma


def _tones(frequencies, sample_rate=22050, seconds=3.0):
    t = np.arange(int(sample_rate * seconds)) / sample_rate
    signal = sum(np.sin(2 * np.pi * f * t) for f in frequencies)
    return (0.2 * signal).astype(np.float32)


class TestEstimateKeyFromChroma:
    """Test key selection from an averaged chroma vector."""

    def test_c_major_profile(self, key_config):
        """The C major profile itself is C major."""
        assert estimate_key_from_chroma(MAJOR_PROFILE, key_config) == "C major"

    def test_rotated_major_profile(self, key_config):
        """Profile rotated to G is G major."""
        assert estimate_key_from_chroma(rotate_profile(MAJOR_PROFILE, 7), key_config) == "G major"

    def test_rotated_minor_profile(self, key_config):
        """Minor profile rotated to A is A minor."""
        assert estimate_key_from_chroma(rotate_profile(MINOR_PROFILE, 9), key_config) == "A minor"

    def test_scale_invariant(self, key_config):
        """Chroma magnitude does not matter."""
        chroma = rotate_profile(MAJOR_PROFILE, 2)
        assert estimate_key_from_chroma(chroma * 1000, key_config) == "D major"

    def test_zero_chroma_unknown(self, key_config):
        """Zero-norm chroma scores zero everywhere."""
        assert estimate_key_from_chroma(np.zeros(12), key_config) == UNKNOWN_KEY

    def test_below_confidence_floor(self, key_config):
        """Best score under the floor yields Unknown."""
        key_config["confidence_floor"] = 0.99
        assert estimate_key_from_chroma(_triad_chroma(0), key_config) == UNKNOWN_KEY

    def test_triad_without_ambiguity(self, key_config):
        """C-E-G triad picks C major."""
        assert estimate_key_from_chroma(_triad_chroma(0, 4, 7), key_config) == "C major"

    def test_triad_with_ambiguity(self, key_config):
        """Runner-up within 90% of best is reported."""
        key_config["report_ambiguity"] = True
        label = estimate_key_from_chroma(_triad_chroma(0, 4, 7), key_config)
        assert label == "C major (possible: E minor)"

    def test_clear_winner_no_ambiguity(self, key_config):
        """A full profile match has no close runner-up."""
        key_config["report_ambiguity"] = True
        key_config["ambiguity_ratio"] = 0.99
        assert estimate_key_from_chroma(MAJOR_PROFILE, key_config) == "C major"

    def test_defaults_without_config(self):
        """Works with no config at all."""
        assert estimate_key_from_chroma(MAJOR_PROFILE) == "C major"


class TestRankKeys:
    """Test candidate ranking."""

    def test_all_candidates_scored(self):
        ranked = rank_keys(MAJOR_PROFILE)
        assert len(ranked) == 24
        assert {(c.root, c.mode) for c in ranked} == {
            (root, mode) for root in range(12) for mode in ("major", "minor")
        }

    def test_sorted_descending(self):
        scores = [c.score for c in rank_keys(MINOR_PROFILE)]
        assert scores == sorted(scores, reverse=True)

    def test_perfect_match_scores_one(self):
        """Profile against itself (no bins suppressed) correlates to 1."""
        best = rank_keys(MAJOR_PROFILE, {"noise_floor": 0.0})[0]
        assert best.label == "C major"
        assert best.score == pytest.approx(1.0)

    def test_tie_keeps_enumeration_order(self):
        """Zero chroma ties everywhere; first candidate is C major."""
        assert rank_keys(np.zeros(12))[0].label == "C major"

    def test_noise_floor_zeroes_weak_bins(self):
        """Bins under 10% of the max are ignored."""
        chroma = _triad_chroma(0, 4, 7)
        noisy = chroma + 0.05
        clean_scores = [c.score for c in rank_keys(chroma)]
        noisy_scores = [c.score for c in rank_keys(noisy)]
        assert [c.label for c in rank_keys(noisy)][:2] == [c.label for c in rank_keys(chroma)][:2]
        assert noisy_scores[0] == pytest.approx(clean_scores[0], rel=1e-2)

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError):
            rank_keys(np.ones(11))


class TestValidateChroma:
    """Test the extractor boundary check."""

    def test_valid_list(self):
        result = validate_chroma([0.5] * 12)
        assert result is not None
        assert result.shape == (12,)

    @pytest.mark.parametrize(
        "raw",
        [None, [1.0] * 11, [1.0] * 13, np.ones((12, 2)), "chroma", {"a": 1}, [float("nan")] * 12,
         [1.0] * 11 + [-0.5]],
    )
    def test_invalid_values(self, raw):
        assert validate_chroma(raw) is None


class TestDetectKey:
    """Test framing and aggregation with an injected extractor."""

    def test_frame_count_and_arguments(self, key_config):
        """4096/2048 framing over 12288 samples gives 5 frames."""
        extractor = Mock(return_value=list(MAJOR_PROFILE))
        samples = np.zeros(4096 * 3, dtype=np.float32)

        assert detect_key(samples, 44100, key_config, extractor=extractor) == "C major"
        assert extractor.call_count == 5
        frame, buffer_size, sample_rate = extractor.call_args[0]
        assert len(frame) == 4096
        assert buffer_size == 4096
        assert sample_rate == 44100

    def test_partial_frame_dropped(self, key_config):
        """No zero-padded frame at the end."""
        extractor = Mock(return_value=list(MAJOR_PROFILE))
        detect_key(np.zeros(4096 + 2047), 44100, key_config, extractor=extractor)
        assert extractor.call_count == 1

    def test_malformed_frames_discarded(self, key_config):
        """Frames with non-12 chroma do not count."""
        good = list(rotate_profile(MINOR_PROFILE, 4))
        extractor = Mock(side_effect=[[1.0] * 7, good, None, good, "bad"])
        samples = np.zeros(4096 * 3)

        assert detect_key(samples, 44100, key_config, extractor=extractor) == "E minor"

    def test_all_frames_malformed(self, key_config):
        """Zero valid frames is Unknown."""
        extractor = Mock(return_value=[1.0, 2.0])
        assert detect_key(np.zeros(4096 * 3), 44100, key_config, extractor=extractor) == UNKNOWN_KEY

    def test_short_buffer(self, key_config):
        """Buffer shorter than a frame never calls the extractor."""
        extractor = Mock()
        assert detect_key(np.zeros(4095), 44100, key_config, extractor=extractor) == UNKNOWN_KEY
        extractor.assert_not_called()

    def test_empty_buffer(self, key_config):
        assert detect_key(np.array([]), 44100, key_config, extractor=Mock()) == UNKNOWN_KEY

    def test_averages_frames(self, key_config):
        """Key comes from the average, not the last frame."""
        c_major = list(MAJOR_PROFILE)
        g_major = list(rotate_profile(MAJOR_PROFILE, 7))
        extractor = Mock(side_effect=[c_major, c_major, c_major, c_major, g_major])
        assert detect_key(np.zeros(4096 * 3), 44100, key_config, extractor=extractor) == "C major"

    def test_samples_not_mutated(self, key_config):
        samples = np.random.default_rng(7).standard_normal(4096 * 2)
        original = samples.copy()
        detect_key(samples, 44100, key_config, extractor=Mock(return_value=list(MAJOR_PROFILE)))
        assert np.array_equal(samples, original)

    def test_progress_reported(self, key_config):
        progress = Mock()
        detect_key(
            np.zeros(4096 * 3), 44100, key_config,
            extractor=Mock(return_value=list(MAJOR_PROFILE)), progress=progress,
        )
        progress.assert_any_call("Chroma: 0.0%")

    def test_extractor_error_propagates(self, key_config):
        """Extractor failures are left to the caller to handle."""
        extractor = Mock(side_effect=RuntimeError("extractor crashed"))
        with pytest.raises(RuntimeError):
            detect_key(np.zeros(4096 * 2), 44100, key_config, extractor=extractor)


class TestLibrosaChroma:
    """End-to-end key detection on synthetic tones."""

    def test_single_frame_shape(self):
        chroma = librosa_chroma(_tones([440.0], seconds=0.2)[:4096], 4096, 22050)
        assert validate_chroma(chroma) is not None
        assert int(np.argmax(chroma)) == 9  # A

    def test_c_major_triad(self, key_config):
        """C4+C5+E4+G4 sinusoids are C major."""
        samples = _tones([261.63, 523.25, 329.63, 392.00])
        assert detect_key(samples, 22050, key_config) == "C major"

    def test_silence_unknown(self, key_config):
        assert detect_key(np.zeros(22050, dtype=np.float32), 22050, key_config) == UNKNOWN_KEY

    def test_deterministic(self, key_config):
        """Same input, same output."""
        samples = _tones([293.66, 369.99, 440.0])
        assert detect_key(samples, 22050, key_config) == detect_key(samples, 22050, key_config)


class TestCamelot:
    """Test Camelot conversion."""

    def test_major(self):
        assert key_to_camelot("C major") == "8B"

    def test_minor(self):
        assert key_to_camelot("A minor") == "8A"

    def test_sharp(self):
        assert key_to_camelot("F# minor") == "11A"

    def test_ambiguity_suffix_ignored(self):
        assert key_to_camelot("C major (possible: E minor)") == "8B"

    def test_unknown(self):
        assert key_to_camelot(UNKNOWN_KEY) is None
