"""Cross-directory file deduplication driven by persisted fingerprint indices."""

__version__ = "0.1.0"
