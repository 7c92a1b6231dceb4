"""
Unit tests for the reverb/delay timing calculator.
"""

import pytest

from dabzaudio.timing import (
    NOTE_VALUES,
    REVERB_PRESETS,
    beat_ms,
    calculate_delay_times,
    calculate_reverb_times,
    format_tables,
)


class TestBeat:
    """Test beat length."""

    def test_120_bpm(self):
        assert beat_ms(120) == 500.0

    def test_string_number(self):
        assert beat_ms("60") == 1000.0

    @pytest.mark.parametrize("bpm", [0, -120, float("nan"), None, "fast"])
    def test_invalid(self, bpm):
        with pytest.raises(ValueError):
            beat_ms(bpm)


class TestReverb:
    """Test reverb preset timings."""

    def test_all_presets(self):
        rows = calculate_reverb_times(120)
        assert [r.name for r in rows] == [name for name, _ in REVERB_PRESETS]

    def test_hall_at_120(self):
        hall = calculate_reverb_times(120)[0]
        assert hall.total_ms == 4000.0
        assert hall.pre_delay_ms == 31.25
        assert hall.decay_ms == 3968.75

    def test_decay_plus_predelay_is_total(self):
        for row in calculate_reverb_times(97):
            assert row.pre_delay_ms + row.decay_ms == pytest.approx(row.total_ms)

    def test_tight_ambience(self):
        tight = calculate_reverb_times(120)[-1]
        assert tight.total_ms == 500.0


class TestDelay:
    """Test delay note timings."""

    def test_all_notes(self):
        assert [r.label for r in calculate_delay_times(120)] == [label for label, _ in NOTE_VALUES]

    def test_quarter_note_at_120(self):
        quarter = calculate_delay_times(120)[2]
        assert quarter.label == "1/4"
        assert quarter.normal_ms == 500.0
        assert quarter.dotted_ms == 750.0
        assert quarter.triplet_ms == pytest.approx(333.3333, rel=1e-6)

    def test_whole_note_at_60(self):
        whole = calculate_delay_times(60)[0]
        assert whole.normal_ms == 4000.0


class TestFormat:
    """Test table rendering."""

    def test_tables(self):
        text = format_tables(120)
        assert "Reverb @ 120 BPM" in text
        assert "Hall (2 Bars)" in text
        assert "3968.75" in text
        assert "500.00 ms" in text
        assert "333.33 ms" in text

    def test_invalid_bpm(self):
        with pytest.raises(ValueError):
            format_tables(0)
