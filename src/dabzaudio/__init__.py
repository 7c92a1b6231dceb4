# Dabz Audio tools: key/BPM analysis and tempo-synced effect timings
# Package: src.dabzaudio

__version__ = "1.0.0-dev"
__author__ = "Dabz Audio Contributors"
__description__ = "Audio key and tempo estimation with reverb/delay timing tables"

# Module structure:
#   - dabzaudio.analyze : decoding, key and tempo estimation
#   - dabzaudio.timing  : reverb/delay calculator
#   - dabzaudio.config  : Configuration management
#   - dabzaudio.cli     : Command-line interface
