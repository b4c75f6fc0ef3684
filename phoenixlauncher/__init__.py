"""Game launcher core for Cataclysm: Dark Days Ahead: detection, version cache, releases, soundpacks and migration planning."""

__version__ = "0.7.2"