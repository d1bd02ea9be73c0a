"""gplay - search YouTube and play the audio track from the terminal."""

__version__ = "0.3.0"
