"""Import listening history dumps into ListenBrainz."""

__version__ = "0.4.0"

CLIENT_NAME = "lb-history-importer"
