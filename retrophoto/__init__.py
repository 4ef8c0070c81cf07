"""RetroPhoto offline upload queue and background-sync worker."""

__version__ = "0.1.0"
