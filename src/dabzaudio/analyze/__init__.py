"""
Audio Analysis Module: estimate BPM and musical key from decoded audio.

- One buffer at a time, channel 0 only
- Key and tempo estimators are independent of each other
"""

__all__ = ["bpm", "key", "chroma", "decode", "pipeline", "progress", "vectors"]
