"""FAA Releasable Aircraft registry sync and search."""

__version__ = "0.1.0"
