"""
Configuration management for Dabz Audio tools.

Loads and validates TOML config against strict bounds.
All tunable analysis parameters are bounded and validated at startup.
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
import logging

logger = logging.getLogger(__name__)

TEMPO_METHODS = ("autocorrelation", "aubio")


class ConfigError(Exception):
    """Raised when config validation fails."""
    pass


class Config:
    """Configuration loader and validator."""

    PARAM_BOUNDS = {
        "key_detection": {
            "frame_size": (512, 16384),
            "hop_size": (128, 16384),
            "confidence_floor": (0.0, 1.0),
            "noise_floor": (0.0, 1.0),
            "ambiguity_ratio": (0.5, 1.0),
            "report_ambiguity": None,  # bool
        },
        "tempo": {
            "method": None,  # str, checked separately
            "frame_size": (256, 8192),
            "hop_size": (64, 8192),
            "smoothing_radius": (0, 50),
            "min_bpm": (30.0, 120.0),
            "max_bpm": (120.0, 300.0),
            "aubio_buf_size": (512, 8192),
            "aubio_hop_size": (128, 4096),
        },
        "output": {
            "write_tags": None,  # bool
        },
    }

    # Sizes used as frame/hop/window counts must be whole numbers
    INT_PARAMS = {
        "key_detection": {"frame_size", "hop_size"},
        "tempo": {"frame_size", "hop_size", "smoothing_radius", "aubio_buf_size", "aubio_hop_size"},
    }

    BOOL_PARAMS = {
        "key_detection": {"report_ambiguity"},
        "output": {"write_tags"},
    }

    DEFAULT_CONFIG = {
        "config_version": "1.0",
        "key_detection": {
            "frame_size": 4096,
            "hop_size": 2048,
            "confidence_floor": 0.15,
            "noise_floor": 0.1,
            "ambiguity_ratio": 0.9,
            "report_ambiguity": False,
        },
        "tempo": {
            "method": "autocorrelation",
            "frame_size": 1024,
            "hop_size": 512,
            "smoothing_radius": 5,
            "min_bpm": 60.0,
            "max_bpm": 180.0,
            "aubio_buf_size": 1024,
            "aubio_hop_size": 512,
        },
        "output": {
            "write_tags": False,
        },
    }

    def __init__(self, config_dict: Dict[str, Any]):
        """Initialize config from dictionary."""
        self.data = config_dict
        self._validate()

    @classmethod
    def defaults(cls) -> "Config":
        """Config built purely from DEFAULT_CONFIG."""
        return cls(copy.deepcopy(cls.DEFAULT_CONFIG))

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load config from TOML file.

        Args:
            config_path: Path to dabz.toml. If None, uses DABZ_CONFIG_PATH env var
                        or defaults to configs/dabz.toml.

        Returns:
            Config instance.

        Raises:
            ConfigError: If config is invalid or unreadable.
        """
        if config_path is None:
            config_path = os.getenv("DABZ_CONFIG_PATH", "configs/dabz.toml")

        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}. Using defaults.")
            return cls.defaults()

        try:
            config_dict = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}")

        logger.info(f"Loaded config from {config_path}")
        return cls(config_dict)

    def _validate(self) -> None:
        """
        Validate all config parameters against PARAM_BOUNDS.

        Raises:
            ConfigError: If any parameter is out of bounds or inconsistent.
        """
        for section, params in self.PARAM_BOUNDS.items():
            if section not in self.data:
                logger.warning(f"Missing config section: {section}. Using defaults.")
                self.data[section] = copy.deepcopy(self.DEFAULT_CONFIG.get(section, {}))
                continue

            section_data = self.data[section]

            for param, bounds in params.items():
                if param not in section_data:
                    default_val = self.DEFAULT_CONFIG.get(section, {}).get(param)
                    if default_val is not None:
                        logger.debug(f"Missing param {section}.{param}. Using default: {default_val}")
                        section_data[param] = default_val
                    continue

                value = section_data[param]

                if param in self.BOOL_PARAMS.get(section, ()):
                    if not isinstance(value, bool):
                        raise ConfigError(f"Parameter {section}.{param}={value!r} is not a boolean")
                    continue

                if bounds is None:
                    continue

                min_val, max_val = bounds
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ConfigError(f"Parameter {section}.{param}={value!r} is not numeric")
                if param in self.INT_PARAMS.get(section, ()) and not isinstance(value, int):
                    raise ConfigError(f"Parameter {section}.{param}={value!r} must be an integer")
                if not (min_val <= value <= max_val):
                    raise ConfigError(
                        f"Parameter {section}.{param}={value} out of bounds "
                        f"[{min_val}, {max_val}]"
                    )

        self._validate_consistency()
        logger.debug("✅ Config validation passed")

    def _validate_consistency(self) -> None:
        """Cross-parameter checks that bounds alone cannot express."""
        key_cfg = self.data["key_detection"]
        tempo_cfg = self.data["tempo"]

        if key_cfg["hop_size"] >= key_cfg["frame_size"]:
            raise ConfigError(
                f"key_detection.hop_size ({key_cfg['hop_size']}) must be smaller "
                f"than frame_size ({key_cfg['frame_size']})"
            )
        if tempo_cfg["hop_size"] >= tempo_cfg["frame_size"]:
            raise ConfigError(
                f"tempo.hop_size ({tempo_cfg['hop_size']}) must be smaller "
                f"than frame_size ({tempo_cfg['frame_size']})"
            )
        if tempo_cfg["min_bpm"] >= tempo_cfg["max_bpm"]:
            raise ConfigError(
                f"tempo.min_bpm ({tempo_cfg['min_bpm']}) must be below "
                f"max_bpm ({tempo_cfg['max_bpm']})"
            )
        if tempo_cfg["method"] not in TEMPO_METHODS:
            raise ConfigError(
                f"tempo.method={tempo_cfg['method']!r} must be one of {TEMPO_METHODS}"
            )

    def get(self, section: str, param: str, default: Any = None) -> Any:
        """Get a config parameter safely."""
        return self.data.get(section, {}).get(param, default)

    def __getitem__(self, section: str) -> Dict[str, Any]:
        """Allow dict-like access: config["tempo"]"""
        return self.data.get(section, {})

    def __repr__(self) -> str:
        version = self.data.get('config_version', 'unknown')
        return f"Config(version={version})"
