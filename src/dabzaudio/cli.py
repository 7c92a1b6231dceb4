#!/usr/bin/env python3
"""
Analyze audio files: print BPM and key, optionally timing tables and tags.

Usage:
  dabz-analyze track.mp3 other.flac --timings
  dabz-analyze track.wav --json --tempo-method aubio
  dabz-analyze --bpm 128
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from dabzaudio.analyze.decode import DecodeError, decode_audio
from dabzaudio.analyze.key import UNKNOWN_KEY, key_to_camelot
from dabzaudio.analyze.pipeline import AnalysisResult, analyze_audio
from dabzaudio.config import TEMPO_METHODS, Config, ConfigError
from dabzaudio.timing import calculate_delay_times, calculate_reverb_times, format_tables

logger = logging.getLogger(__name__)


def _write_tags(file_path: str, bpm: Optional[int] = None, key: Optional[str] = None) -> None:
    """
    Write BPM and key to tags (ID3 for MP3, Vorbis for FLAC, MP4 for M4A).

    Args:
        file_path: Path to audio file.
        bpm: BPM value (optional).
        key: Key label (optional, "Unknown" is skipped).
    """
    if key == UNKNOWN_KEY:
        key = None
    if not bpm and not key:
        return

    file_ext = Path(file_path).suffix.lower()
    try:
        if file_ext in [".m4a", ".mp4", ".aac"]:
            from mutagen.mp4 import MP4

            audio = MP4(file_path)
            if bpm:
                audio["tmpo"] = [int(bpm)]
            if key:
                audio["\xa9key"] = [key]
            audio.save()

        elif file_ext == ".mp3":
            from mutagen.easyid3 import EasyID3

            audio = EasyID3(file_path)
            if bpm:
                audio["bpm"] = str(int(bpm))
            if key:
                audio["initialkey"] = key
            audio.save()

        elif file_ext == ".flac":
            from mutagen.flac import FLAC

            audio = FLAC(file_path)
            if bpm:
                audio["bpm"] = str(int(bpm))
            if key:
                audio["key"] = key
            audio.save()

        else:
            logger.debug(f"Unsupported format for tagging: {file_ext}")
            return

        logger.debug(f"Tags written for {Path(file_path).name}")

    except Exception as e:
        logger.warning(f"Tag writing failed for {file_path}: {e}")


def _progress_logger(name: str):
    def progress(message: str) -> None:
        logger.debug(f"[{name}] {message}")
    return progress


def _format_result(file_path: str, result: AnalysisResult) -> str:
    bpm = f"{result.bpm} BPM" if result.bpm is not None else "BPM unknown"
    camelot = key_to_camelot(result.key)
    key = f"{result.key} ({camelot})" if camelot else result.key
    return f"{file_path}: {bpm}, Key: {key}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dabz-analyze",
        description="Estimate BPM and musical key of audio files.",
    )
    parser.add_argument("files", nargs="*", help="Audio files to analyze")
    parser.add_argument("--bpm", type=float, help="Print timing tables for this tempo (no files needed)")
    parser.add_argument("--config", help="Path to dabz.toml (default: $DABZ_CONFIG_PATH)")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--timings", action="store_true", help="Print reverb/delay tables for the detected tempo")
    parser.add_argument("--write-tags", action="store_true", help="Write BPM/key tags into the files")
    parser.add_argument("--tempo-method", choices=TEMPO_METHODS, help="Override tempo.method")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _print_timings(bpm: float, as_json: bool) -> int:
    try:
        if as_json:
            print(json.dumps({
                "bpm": bpm,
                "reverb": [asdict(row) for row in calculate_reverb_times(bpm)],
                "delay": [asdict(row) for row in calculate_delay_times(bpm)],
            }, indent=2))
        else:
            print(format_tables(bpm))
    except ValueError as e:
        logger.error(f"Invalid tempo: {e}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main analysis entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.files and args.bpm is None:
        parser.error("give at least one audio file or --bpm")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    )

    if not args.files:
        return _print_timings(args.bpm, args.json)
    if args.bpm is not None:
        logger.warning("--bpm is ignored when files are given; use --timings instead")

    try:
        config = Config.load(args.config)
        if args.tempo_method:
            config["tempo"]["method"] = args.tempo_method
        write_tags = args.write_tags or config.get("output", "write_tags", False)

        records = []
        failures = 0
        for file_path in args.files:
            if not Path(file_path).is_file():
                logger.error(f"File not found: {file_path}")
                failures += 1
                continue

            logger.info(f"Analyzing: {Path(file_path).name}")
            try:
                decoded = decode_audio(file_path)
            except DecodeError as e:
                logger.error(str(e))
                failures += 1
                continue

            result = analyze_audio(decoded, config=config, progress=_progress_logger(Path(file_path).name))

            if write_tags:
                _write_tags(file_path, result.bpm, result.key)

            records.append({"file": file_path, **result.to_dict(), "camelot": key_to_camelot(result.key)})

            if not args.json:
                print(_format_result(file_path, result))
                if args.timings and result.bpm is not None:
                    print(format_tables(result.bpm))
                    print()

        if args.json:
            print(json.dumps(records, indent=2))

        return 1 if failures else 0

    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Analysis interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
