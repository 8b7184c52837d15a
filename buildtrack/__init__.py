"""BuildTrack: construction project, procurement and inventory API."""

__version__ = "1.0.0"
