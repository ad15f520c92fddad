"""Football win-probability engine (pre-match and in-play)."""

__version__ = "0.3.0"
