"""
Reverb/Delay Timing Calculator: tempo-synced effect times in milliseconds.

- Reverb: pre-delay is a 1/64 note (beat / 16); decay fills the rest
  of the preset's length
- Delay: straight, dotted (x1.5) and triplet (x2/3) times per note value
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

# (name, length in whole notes)
REVERB_PRESETS: Tuple[Tuple[str, float], ...] = (
    ("Hall (2 Bars)", 2.0),
    ("Large Room (1 Bar)", 1.0),
    ("Small Room (1/2 Note)", 0.5),
    ("Tight Ambience (1/4 Note)", 0.25),
)

# (label, fraction of a whole note)
NOTE_VALUES: Tuple[Tuple[str, float], ...] = (
    ("1/1", 1.0),
    ("1/2", 0.5),
    ("1/4", 0.25),
    ("1/8", 0.125),
    ("1/16", 0.0625),
    ("1/32", 0.03125),
    ("1/64", 0.015625),
)


@dataclass(frozen=True)
class ReverbTiming:
    name: str
    pre_delay_ms: float
    decay_ms: float
    total_ms: float


@dataclass(frozen=True)
class DelayTiming:
    label: str
    normal_ms: float
    dotted_ms: float
    triplet_ms: float


def beat_ms(bpm: float) -> float:
    """
    Length of one quarter-note beat in milliseconds.

    Raises:
        ValueError: If bpm is not a positive number
    """
    try:
        bpm = float(bpm)
    except (TypeError, ValueError):
        raise ValueError(f"BPM must be a number, got {bpm!r}")
    if not bpm > 0:
        raise ValueError(f"BPM must be positive, got {bpm}")
    return 60000.0 / bpm


def calculate_reverb_times(bpm: float) -> List[ReverbTiming]:
    """Pre-delay, decay and total time for each reverb preset."""
    beat = beat_ms(bpm)
    pre_delay = beat / 16
    rows = []
    for name, whole_notes in REVERB_PRESETS:
        total = beat * 4 * whole_notes
        rows.append(ReverbTiming(name, pre_delay, total - pre_delay, total))
    return rows


def calculate_delay_times(bpm: float) -> List[DelayTiming]:
    """Straight, dotted and triplet delay time for each note value."""
    beat = beat_ms(bpm)
    rows = []
    for label, factor in NOTE_VALUES:
        normal = beat * 4 * factor
        rows.append(DelayTiming(label, normal, normal * 1.5, normal * (2 / 3)))
    return rows


def format_tables(bpm: float) -> str:
    """Render both timing tables as plain text (two decimals, ms)."""
    lines = [f"Reverb @ {float(bpm):g} BPM", f"  {'Preset':<28}{'Pre-delay':>12}{'Decay':>12}{'Total':>12}"]
    for row in calculate_reverb_times(bpm):
        lines.append(
            f"  {row.name:<28}{row.pre_delay_ms:>12.2f}{row.decay_ms:>12.2f}{row.total_ms:>12.2f}"
        )

    lines.append("")
    lines.append(f"Delay @ {float(bpm):g} BPM")
    lines.append(f"  {'Note':<8}{'Normal':>14}{'Dotted':>14}{'Triplet':>14}")
    for row in calculate_delay_times(bpm):
        lines.append(
            f"  {row.label:<8}{row.normal_ms:>11.2f} ms{row.dotted_ms:>11.2f} ms{row.triplet_ms:>11.2f} ms"
        )
    return "\n".join(lines)
