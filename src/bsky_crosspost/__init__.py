"""Cross-post statuses and profiles to an AT Protocol (Bluesky) PDS."""

__version__ = "0.1.0"
